from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class _Unchanged:
    """Field is left as it is."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "UNCHANGED"

    def __bool__(self):
        return False


class _Clear:
    """Optional field is reset to its empty value."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "CLEAR"


@dataclass(frozen=True)
class SetTo(Generic[T]):
    value: T


UNCHANGED = _Unchanged()
CLEAR = _Clear()

Patch = Union[_Unchanged, _Clear, SetTo[T]]


def apply_patch(patch: "Patch[T]", current, empty=None):
    """Resolve a patch against the current value of a field."""
    if patch is UNCHANGED:
        return current
    if patch is CLEAR:
        return empty
    if isinstance(patch, SetTo):
        return patch.value
    raise TypeError(f"Not a patch value: {patch!r}")


### COMMENTS
# Three states per field when editing a task:
#   UNCHANGED      -> field not mentioned by the caller
#   SetTo(value)   -> overwrite with `value`
#   CLEAR          -> drop an optional field (description, due, repeat, tags, depends_on)
#
# The CLI maps its literal "none" and the HTTP layer maps JSON null onto CLEAR,
# so the service never has to guess what an empty string means.
