"""Value objects for the validation rules context."""

from enum import Enum


class CategoryField(Enum):
    """Category fields a validation rule may target."""

    NAME = "name"
    DESCRIPTION = "description"
    COLOR = "color"
    ICON = "icon"
    IMAGE = "image"
    SORT_ORDER = "sortOrder"
    IS_ACTIVE = "isActive"
    IS_PUBLIC = "isPublic"
    PARENT = "parent"
    TAGS = "tags"
    CUSTOM_FIELDS = "customFields"


class ValidationType(Enum):
    """Types of validation rules."""

    REQUIRED = "required"
    MIN_LENGTH = "minLength"
    MAX_LENGTH = "maxLength"
    PATTERN = "pattern"
    UNIQUE = "unique"
    # Extension point, evaluates to no error
    CUSTOM = "custom"

    @property
    def is_length(self) -> bool:
        return self in (ValidationType.MIN_LENGTH, ValidationType.MAX_LENGTH)
