from dagster import DynamicPartitionsDefinition

# One partition per epoch, registered as exports arrive
epoch_partitions = DynamicPartitionsDefinition(name="epochs")
