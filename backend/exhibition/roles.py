# Overview: The closed set of roles a user can hold.

from __future__ import annotations

import enum


class Role(str, enum.Enum):
    """
    OWNER administers the exhibition and reviews invoices.
    EMPLOYEE is a cashier who creates invoices.
    """
    OWNER = "OWNER"
    EMPLOYEE = "EMPLOYEE"

    @classmethod
    def parse(cls, value: "str | Role") -> "Role":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown role: {value!r}") from None
