from __future__ import annotations

import asyncio

import pytest
from pymongo.errors import OperationFailure

from conftest import seed_profile
from cosmic_match.config import get_settings
from cosmic_match.repositories.base import with_timeout
from cosmic_match.repositories.exceptions import (
    BackendTimeoutError,
    DuplicateKeyRepositoryError,
    RepositoryError,
)


async def _slow() -> str:
    await asyncio.sleep(1)
    return "late"


async def _raise(exc: Exception):
    raise exc


@pytest.mark.asyncio
async def test_slow_call_becomes_timeout_error() -> None:
    with pytest.raises(BackendTimeoutError):
        await with_timeout(_slow(), timeout=0.01)


@pytest.mark.asyncio
async def test_timeout_defaults_to_configured_limit(monkeypatch) -> None:
    monkeypatch.setenv("BACKEND_TIMEOUT_SECONDS", "0.01")
    get_settings.cache_clear()  # type: ignore[attr-defined]

    with pytest.raises(BackendTimeoutError):
        await with_timeout(_slow())


@pytest.mark.asyncio
@pytest.mark.parametrize("code", [11000, 11001])
async def test_unique_violation_codes_become_duplicate_key(code) -> None:
    failure = OperationFailure("E11000 duplicate key error", code=code)

    with pytest.raises(DuplicateKeyRepositoryError):
        await with_timeout(_raise(failure))


@pytest.mark.asyncio
async def test_other_driver_errors_become_repository_error() -> None:
    with pytest.raises(RepositoryError) as info:
        await with_timeout(_raise(OperationFailure("not authorized", code=13)))

    assert not isinstance(info.value, (DuplicateKeyRepositoryError, BackendTimeoutError))


@pytest.mark.asyncio
async def test_result_passes_through() -> None:
    async def _fast() -> int:
        return 7

    assert await with_timeout(_fast(), timeout=1) == 7


@pytest.mark.asyncio
async def test_unique_index_violation_from_driver(repos) -> None:
    await seed_profile(repos, "alice")
    await repos.actions.record("alice", "bob", "pass")

    with pytest.raises(DuplicateKeyRepositoryError):
        await repos.actions.record("alice", "bob", "like")
