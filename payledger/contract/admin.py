"""
Admin singleton.

The admin is set once by `initialize` and can only be replaced by the
current admin. `check_admin` is the guard every privileged entry point runs
first: the claimed caller must be the stored admin *and* must have authorized
the invocation.
"""

from __future__ import annotations

from ..errors import NotInitialized, Unauthorized
from ..runtime.auth import require_auth
from ..runtime.env import Context
from ..state.keys import DataKey
from . import require_address


def has_admin(ctx: Context) -> bool:
    return ctx.has(DataKey.admin())


def read_admin(ctx: Context) -> str:
    admin = ctx.load(DataKey.admin())
    if admin is None:
        raise NotInitialized()
    return admin


def write_admin(ctx: Context, admin: str) -> None:
    ctx.save(DataKey.admin(), require_address(admin, "admin"))


def check_admin(ctx: Context, caller: str) -> str:
    require_auth(ctx, caller)
    admin = read_admin(ctx)
    if caller != admin:
        raise Unauthorized("caller is not the admin", address=caller)
    return admin


def transfer_admin(ctx: Context, new_admin: str) -> None:
    """Replace the admin. Authorized by the current admin."""
    current = read_admin(ctx)
    require_auth(ctx, current)
    write_admin(ctx, new_admin)
    ctx.emit("admin/transferred", previous=current, admin=new_admin)
