# tests/test_transaction_rollback.py

"""Tests for transaction atomicity and rollback behavior."""

from unittest.mock import patch

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from tablerank.db.kv_store import KeyValueStore
from tablerank.db.rating_store import RatingStore
from tablerank.exceptions import StorageFailureError
from tablerank.schemas.common import PlayerRatingState

# =============================================================================
# Helper Functions
# =============================================================================


async def create_player(client: AsyncClient, player_id: str) -> str:
    """Helper to create a player and return its ID."""
    res = await client.post("/players/", json={"id": player_id, "name": player_id})
    assert res.status_code == 201
    return str(res.json()["id"])


async def record_singles(client: AsyncClient, winner: str, loser: str):
    return await client.post(
        "/matches/",
        json={
            "group_code": "office",
            "mode": "1v1",
            "team1": [{"player_id": winner}],
            "team2": [{"player_id": loser}],
            "winning_team": 1,
        },
        headers={"X-Player-ID": winner},
    )


async def singles_state(db: AsyncSession, player_id: str) -> PlayerRatingState:
    profile = await RatingStore(db).get_player_profile(player_id)
    assert profile is not None
    return profile.singles


async def count_matches(db: AsyncSession) -> int:
    return len(await KeyValueStore(db).get_by_prefix("match:"))


def fail_on_nth_set(n: int):
    """Wrap KeyValueStore.set so that its n-th call fails."""
    original_set = KeyValueStore.set
    calls = {"count": 0}

    async def flaky_set(self, key, value):
        calls["count"] += 1
        if calls["count"] == n:
            raise StorageFailureError("write", key, "disk I/O error")
        await original_set(self, key, value)

    return flaky_set


# =============================================================================
# Record Rollback
# =============================================================================


@pytest.mark.asyncio
async def test_record_rolls_back_when_ledger_write_fails(
    async_client: AsyncClient, db_session: AsyncSession
):
    """Stats applied before a failed entry write do not survive."""
    # 1. ARRANGE
    await create_player(async_client, "alice")
    await create_player(async_client, "bob")

    # 2. ACT: Fail persisting the ledger entry after stats were written
    with patch(
        "tablerank.db.rating_store.RatingStore.put_ledger_entry",
        side_effect=StorageFailureError("write", "match:x", "disk I/O error"),
    ):
        response = await record_singles(async_client, "alice", "bob")

    # 3. ASSERT: Retryable failure, and nothing changed
    assert response.status_code == 503
    assert response.json()["retryable"] is True
    assert await singles_state(db_session, "alice") == PlayerRatingState()
    assert await singles_state(db_session, "bob") == PlayerRatingState()
    assert await count_matches(db_session) == 0


@pytest.mark.asyncio
async def test_record_rolls_back_when_second_profile_write_fails(
    async_client: AsyncClient, db_session: AsyncSession
):
    """One participant updated and the other not is never visible."""
    await create_player(async_client, "alice")
    await create_player(async_client, "bob")

    # set #1 is alice's profile, set #2 is bob's
    with patch.object(KeyValueStore, "set", fail_on_nth_set(2)):
        response = await record_singles(async_client, "alice", "bob")

    assert response.status_code == 503
    assert await singles_state(db_session, "alice") == PlayerRatingState()
    assert await singles_state(db_session, "bob") == PlayerRatingState()
    assert await count_matches(db_session) == 0


@pytest.mark.asyncio
async def test_retry_after_storage_failure_succeeds(
    async_client: AsyncClient, db_session: AsyncSession
):
    await create_player(async_client, "alice")
    await create_player(async_client, "bob")

    with patch.object(KeyValueStore, "set", fail_on_nth_set(2)):
        failed = await record_singles(async_client, "alice", "bob")
    retried = await record_singles(async_client, "alice", "bob")

    assert failed.status_code == 503
    assert retried.status_code == 201
    assert await singles_state(db_session, "alice") == PlayerRatingState(
        rating=1216, wins=1
    )
    assert await count_matches(db_session) == 1


@pytest.mark.asyncio
async def test_database_error_is_reported_as_storage_failure(
    async_client: AsyncClient, db_session: AsyncSession
):
    """A raw database error during a write surfaces as a retryable failure."""
    await create_player(async_client, "alice")
    await create_player(async_client, "bob")

    with patch(
        "sqlalchemy.ext.asyncio.AsyncSession.flush",
        side_effect=OperationalError("UPDATE kv_store", {}, Exception("locked")),
    ):
        response = await record_singles(async_client, "alice", "bob")

    assert response.status_code == 503
    assert await singles_state(db_session, "alice") == PlayerRatingState()


@pytest.mark.asyncio
async def test_failed_commit_is_reported_as_storage_failure(
    async_client: AsyncClient, db_session: AsyncSession
):
    """A database that refuses the final commit yields a retryable 503."""
    # 1. ARRANGE
    await create_player(async_client, "alice")
    await create_player(async_client, "bob")

    # 2. ACT
    with patch(
        "sqlalchemy.ext.asyncio.AsyncSession.commit",
        side_effect=OperationalError(
            "COMMIT", {}, Exception("database is locked")
        ),
    ):
        response = await record_singles(async_client, "alice", "bob")

    # 3. ASSERT: Retryable, and the flushed writes were rolled back
    assert response.status_code == 503
    data = response.json()
    assert data["error_type"] == "StorageFailureError"
    assert data["retryable"] is True
    assert await singles_state(db_session, "alice") == PlayerRatingState()
    assert await singles_state(db_session, "bob") == PlayerRatingState()
    assert await count_matches(db_session) == 0


@pytest.mark.asyncio
async def test_failed_commit_on_player_creation_is_retryable(
    async_client: AsyncClient,
):
    with patch(
        "sqlalchemy.ext.asyncio.AsyncSession.commit",
        side_effect=OperationalError(
            "COMMIT", {}, Exception("database is locked")
        ),
    ):
        response = await async_client.post(
            "/players/", json={"id": "alice", "name": "Alice"}
        )

    assert response.status_code == 503
    assert (await async_client.get("/players/alice")).status_code == 404


# =============================================================================
# Delete Rollback
# =============================================================================


@pytest.mark.asyncio
async def test_delete_rolls_back_when_entry_removal_fails(
    async_client: AsyncClient, db_session: AsyncSession
):
    """If the entry cannot be removed, the reversal does not survive either."""
    # 1. ARRANGE
    await create_player(async_client, "alice")
    await create_player(async_client, "bob")
    created = await record_singles(async_client, "alice", "bob")
    match_id = created.json()["ledger_entry"]["match_id"]

    # 2. ACT
    with patch(
        "tablerank.db.rating_store.RatingStore.delete_ledger_entry",
        side_effect=StorageFailureError("delete", f"match:{match_id}", "disk full"),
    ):
        response = await async_client.delete(
            f"/matches/{match_id}", headers={"X-Player-ID": "alice"}
        )

    # 3. ASSERT: Ratings still reflect the match, and the match still exists
    assert response.status_code == 503
    assert await singles_state(db_session, "alice") == PlayerRatingState(
        rating=1216, wins=1
    )
    assert await singles_state(db_session, "bob") == PlayerRatingState(
        rating=1184, losses=1
    )
    assert (await async_client.get(f"/matches/{match_id}")).status_code == 200

    # 4. ACT: The delete can be retried
    retry = await async_client.delete(
        f"/matches/{match_id}", headers={"X-Player-ID": "alice"}
    )

    assert retry.status_code == 204
    assert await singles_state(db_session, "alice") == PlayerRatingState()
    assert await singles_state(db_session, "bob") == PlayerRatingState()


@pytest.mark.asyncio
async def test_delete_with_failed_commit_keeps_match(
    async_client: AsyncClient, db_session: AsyncSession
):
    await create_player(async_client, "alice")
    await create_player(async_client, "bob")
    created = await record_singles(async_client, "alice", "bob")
    match_id = created.json()["ledger_entry"]["match_id"]

    with patch(
        "sqlalchemy.ext.asyncio.AsyncSession.commit",
        side_effect=OperationalError("COMMIT", {}, Exception("disk I/O error")),
    ):
        response = await async_client.delete(
            f"/matches/{match_id}", headers={"X-Player-ID": "alice"}
        )

    assert response.status_code == 503
    assert response.json()["retryable"] is True
    assert await singles_state(db_session, "alice") == PlayerRatingState(
        rating=1216, wins=1
    )
    assert (await async_client.get(f"/matches/{match_id}")).status_code == 200
