"""Defines common Value Objects used across the setting layers.

These objects name the plain strings and floats that flow between the
cache, the durable store and the typed API.
"""

from typing import NewType

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are strings at runtime.
SettingKey = NewType("SettingKey", str)       # Opaque identifier of a setting
RawValue = NewType("RawValue", str)           # Canonical string form as stored


class Float32(float):
    """Marks a float that should be encoded at IEEE-754 single precision.

    Python floats are always 64-bit; wrap a value in Float32 to get the
    shortest decimal that survives a round trip through a 32-bit float.
    """

    def __repr__(self) -> str:
        return f"Float32({float(self)!r})"
