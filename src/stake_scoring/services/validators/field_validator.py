from typing import Any, Dict

TRUE_VALUES = {"true", "t", "1", "yes"}
FALSE_VALUES = {"false", "f", "0", "no"}


class FieldValidator:
    """Handles field validation and transformation rules for raw text rows."""

    def __init__(self):
        self.integer_fields = set()
        self.float_fields = set()
        self.boolean_fields = set()
        self.string_fields = set()
        self.nullable_fields = set()

    def add_integer_field(self, field_name: str, nullable: bool = False):
        """Register a field that should be parsed as an int."""
        self.integer_fields.add(field_name)
        if nullable:
            self.nullable_fields.add(field_name)
        return self

    def add_float_field(self, field_name: str, nullable: bool = False):
        """Register a field that should be parsed as a float."""
        self.float_fields.add(field_name)
        if nullable:
            self.nullable_fields.add(field_name)
        return self

    def add_boolean_field(self, field_name: str, nullable: bool = False):
        """Register a field holding a true/false flag."""
        self.boolean_fields.add(field_name)
        if nullable:
            self.nullable_fields.add(field_name)
        return self

    def add_string_field(self, field_name: str, nullable: bool = False):
        """Register a field that should be kept as a stripped string."""
        self.string_fields.add(field_name)
        if nullable:
            self.nullable_fields.add(field_name)
        return self

    def validate_and_transform(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate and transform a row according to registered rules.
        Empty strings count as missing values.

        Raises:
            ValueError: If validation fails
        """
        transformed = {
            key: (value.strip() if isinstance(value, str) else value)
            for key, value in row.items()
        }

        self._transform(transformed, self.integer_fields, self._parse_integer)
        self._transform(transformed, self.float_fields, self._parse_float)
        self._transform(transformed, self.boolean_fields, self._parse_boolean)
        self._transform(transformed, self.string_fields, str)

        return transformed

    def _transform(self, row: Dict[str, Any], fields: set, parser) -> None:
        for field in fields:
            if field not in row:
                raise ValueError(f"Field '{field}' is missing")

            value = row[field]

            if value is None or value == "":
                if field not in self.nullable_fields:
                    raise ValueError(f"Field '{field}' cannot be empty")
                row[field] = None
                continue

            try:
                row[field] = parser(value)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"Field '{field}': {exc}") from exc

    @staticmethod
    def _parse_integer(value) -> int:
        if isinstance(value, int):
            return value
        try:
            return int(value)
        except ValueError:
            pass
        # exports sometimes write integers as "123.0"
        number = float(value)
        if not number.is_integer():
            raise ValueError(f"expected an integer, got {value!r}")
        return int(number)

    @staticmethod
    def _parse_float(value) -> float:
        number = float(value)
        if number != number:
            raise ValueError("NaN is not a valid value")
        return number

    @staticmethod
    def _parse_boolean(value) -> bool:
        if isinstance(value, bool):
            return value
        lowered = str(value).lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
        raise ValueError(f"expected a boolean, got {value!r}")
