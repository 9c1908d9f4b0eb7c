"""
Type-safe wrapper classes for Discord identifiers.

Discord snowflakes are 64-bit integers but travel through the document store
and audit log as strings. The wrappers here keep both views consistent: they
compare equal to the raw ``int`` and ``str`` forms, hash like the string form
(so they can key dicts shared with plain repository ids), and convert back with
``to_int()`` for API calls.
"""

from __future__ import annotations

from typing import Union

import discord


class Snowflake:
    """
    Base wrapper for a Discord snowflake stored as a string.

    Example:
        >>> uid = UserID(123456789012345678)
        >>> uid.to_int()
        123456789012345678
        >>> uid == "123456789012345678"
        True
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "Snowflake"]) -> None:
        """
        Args:
            value: The snowflake as a string, int, or another wrapper.

        Raises:
            ValueError: If the value cannot be converted to a valid snowflake.
        """
        if isinstance(value, Snowflake):
            self._value = value._value
        elif isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool")
        elif isinstance(value, int):
            self._value = str(value)
        elif isinstance(value, str):
            self._value = str(int(value.strip()))
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")

    def to_int(self) -> int:
        return int(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Snowflake):
            return type(self) is type(other) and self._value == other._value
        if isinstance(other, str):
            return self._value == other
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class UserID(Snowflake):
    """Snowflake of a Discord user or guild member."""

    __slots__ = ()

    @classmethod
    def from_user(cls, member: Union[discord.Member, discord.User]) -> "UserID":
        return cls(member.id)


class GuildID(Snowflake):
    """Snowflake of a Discord guild."""

    __slots__ = ()

    @classmethod
    def from_guild(cls, guild: discord.Guild) -> "GuildID":
        return cls(guild.id)


class RoleID(Snowflake):
    """Snowflake of a Discord role."""

    __slots__ = ()

    @classmethod
    def from_role(cls, role: discord.Role) -> "RoleID":
        return cls(role.id)


class DiscordUsername:
    """
    Display name of a Discord user, falling back to a fixed placeholder.

    Attributes:
        _value (str): The username string.
    """

    __slots__ = ("_value",)

    DEFAULT_USERNAME = "Unknown User"

    def __init__(self, value: Union[str, "DiscordUsername", None]) -> None:
        if isinstance(value, DiscordUsername):
            self._value = value._value
        elif isinstance(value, str):
            self._value = value.strip() or self.DEFAULT_USERNAME
        else:
            self._value = self.DEFAULT_USERNAME

    @classmethod
    def from_user(cls, member: Union[discord.Member, discord.User]) -> "DiscordUsername":
        return cls(str(member))

    @classmethod
    def unknown(cls) -> "DiscordUsername":
        return cls(cls.DEFAULT_USERNAME)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"DiscordUsername({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DiscordUsername):
            return self._value == other._value
        if isinstance(other, str):
            return self._value == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)
