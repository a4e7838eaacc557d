# BizDesk - Finance, Warehouse & Inventory reporting for small businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""Exception classes for BizDesk."""


class BizDeskError(Exception):
    """Base exception for BizDesk."""


class StoreError(BizDeskError):
    """
    The underlying store could not complete a read or a write.

    Raised from the original ``sqlite3.Error`` so the cause stays attached.
    A missing row is never reported through this class when "not found" is
    a valid answer (for example a user without a balance configuration).
    """


class DataIntegrityError(BizDeskError, ValueError):
    """A stored or submitted value cannot be interpreted (e.g. a non-numeric amount)."""


class NotFoundError(BizDeskError, LookupError):
    """A row addressed by id does not exist (or belongs to another user)."""
