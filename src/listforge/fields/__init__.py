"""Built-in field types.

Usage:
    from listforge.core.types import FieldTypeRegistry
    from listforge.fields import register_builtin_field_types

    registry = FieldTypeRegistry()
    register_builtin_field_types(registry)
"""

from listforge.core.types import FieldTypeDescriptor, FieldTypeRegistry, Types
from listforge.fields.arrays import DateArray, NumberArray, TextArray
from listforge.fields.base import Field
from listforge.fields.boolean import Boolean
from listforge.fields.dates import Date, Datetime
from listforge.fields.geopoint import GeoPoint
from listforge.fields.number import Money, Number
from listforge.fields.password import Password
from listforge.fields.relationship import Relationship
from listforge.fields.select import Select
from listforge.fields.text import Email, Html, Key, Text, Textarea, TextValidation, Url

BUILTIN_FIELD_TYPES: dict[Types, type[Field]] = {
    Types.TEXT: Text,
    Types.TEXTAREA: Textarea,
    Types.HTML: Html,
    Types.EMAIL: Email,
    Types.URL: Url,
    Types.KEY: Key,
    Types.NUMBER: Number,
    Types.MONEY: Money,
    Types.BOOLEAN: Boolean,
    Types.SELECT: Select,
    Types.DATE: Date,
    Types.DATETIME: Datetime,
    Types.TEXT_ARRAY: TextArray,
    Types.NUMBER_ARRAY: NumberArray,
    Types.DATE_ARRAY: DateArray,
    Types.PASSWORD: Password,
    Types.RELATIONSHIP: Relationship,
    Types.GEO_POINT: GeoPoint,
}


def register_builtin_field_types(registry: FieldTypeRegistry) -> None:
    """Register every built-in type on ``registry``."""
    for type_enum, field_cls in BUILTIN_FIELD_TYPES.items():
        registry.register(
            FieldTypeDescriptor(
                type_id=type_enum.value,
                factory=field_cls,
                storage_type=field_cls.storage_type,
                description=(field_cls.__doc__ or "").strip().split("\n")[0],
            )
        )


__all__ = [
    "BUILTIN_FIELD_TYPES",
    "Boolean",
    "Date",
    "DateArray",
    "Datetime",
    "Email",
    "Field",
    "GeoPoint",
    "Html",
    "Key",
    "Money",
    "Number",
    "NumberArray",
    "Password",
    "Relationship",
    "Select",
    "Text",
    "TextArray",
    "TextValidation",
    "Textarea",
    "Url",
    "register_builtin_field_types",
]
