"""Validator epoch scoring and stake allocation pipeline."""

__version__ = "0.1.0"
