"""Tests for the favorite status watcher and the favorites list view."""

from __future__ import annotations

import asyncio

import pytest

from app.auth import UserSession
from app.exceptions import FavoriteToggleError, StoreUnavailable
from app.repositories.favorites import FavoritesRepository
from app.services.favorite_sync import FavoriteStatus, FavoriteWatcher, FavoritesListView
from tests.conftest import MemoryStore


KEY = "/works/OL1W"
DUNE = {"key": KEY, "title": "Dune"}


class HeldReplyStore(MemoryStore):
    """Reads the collection up front and can hold one reply before returning it."""

    def __init__(self) -> None:
        super().__init__()
        self.hold: asyncio.Event | None = None

    async def list_items(self, user_id: str) -> list[dict]:
        snapshot = [dict(item) for item in self.collections.get(user_id, [])]
        hold, self.hold = self.hold, None
        if hold is not None:
            await hold.wait()
        await self._round_trip("list")
        return snapshot


@pytest.fixture
def repository(memory_store: MemoryStore) -> FavoritesRepository:
    return FavoritesRepository(memory_store)


async def _next_status(changes, timeout: float = 1.0) -> FavoriteStatus:
    return await asyncio.wait_for(changes.__anext__(), timeout)


@pytest.mark.asyncio
async def test_status_is_checking_until_first_lookup_completes(
    repository: FavoritesRepository, memory_store: MemoryStore, alice: UserSession
) -> None:
    memory_store.gate = asyncio.Event()
    watcher = FavoriteWatcher(repository, alice, KEY)

    start = asyncio.create_task(watcher.start())
    await asyncio.sleep(0.01)
    assert watcher.status is FavoriteStatus.CHECKING

    memory_store.gate.set()
    assert await start is FavoriteStatus.NOT_FAVORITED
    await watcher.close()


@pytest.mark.asyncio
async def test_start_reports_existing_favorite(
    repository: FavoritesRepository, alice: UserSession
) -> None:
    record_id = await repository.add(alice, DUNE)

    async with FavoriteWatcher(repository, alice, KEY) as watcher:
        assert watcher.status is FavoriteStatus.FAVORITED
        assert watcher.is_favorite is True
        assert watcher.record_id == record_id


@pytest.mark.asyncio
async def test_lookup_failure_shows_not_favorited_without_raising(
    memory_store: MemoryStore, alice: UserSession
) -> None:
    repository = FavoritesRepository(memory_store, fail_open_on_lookup_error=False)
    memory_store.failing = True

    async with FavoriteWatcher(repository, alice, KEY) as watcher:
        assert watcher.status is FavoriteStatus.NOT_FAVORITED


@pytest.mark.asyncio
async def test_toggle_updates_status_both_ways(
    repository: FavoritesRepository, alice: UserSession
) -> None:
    async with FavoriteWatcher(repository, alice, KEY) as watcher:
        added = await watcher.toggle(DUNE)
        assert added.is_favorite is True
        assert watcher.status is FavoriteStatus.FAVORITED
        assert watcher.record_id == added.record_id

        await watcher.toggle()
        assert watcher.status is FavoriteStatus.NOT_FAVORITED
        assert watcher.record_id is None

    assert await repository.list(alice) == []


@pytest.mark.asyncio
async def test_failed_toggle_raises_and_keeps_status(
    repository: FavoritesRepository, memory_store: MemoryStore, alice: UserSession
) -> None:
    async with FavoriteWatcher(repository, alice, KEY) as watcher:
        memory_store.failing = True

        with pytest.raises(FavoriteToggleError) as exc_info:
            await watcher.toggle(DUNE)

        assert isinstance(exc_info.value.__cause__, StoreUnavailable)
        assert watcher.status is FavoriteStatus.NOT_FAVORITED

    memory_store.failing = False
    assert await repository.list(alice) == []


@pytest.mark.asyncio
async def test_second_toggle_while_one_is_in_flight_is_rejected(
    repository: FavoritesRepository, memory_store: MemoryStore, alice: UserSession
) -> None:
    async with FavoriteWatcher(repository, alice, KEY) as watcher:
        memory_store.gate = asyncio.Event()
        first = asyncio.create_task(watcher.toggle(DUNE))
        await asyncio.sleep(0.01)

        with pytest.raises(FavoriteToggleError):
            await watcher.toggle(DUNE)

        memory_store.gate.set()
        await first

    assert len(await repository.list(alice)) == 1


@pytest.mark.asyncio
async def test_two_watchers_toggling_together_leave_duplicates(
    repository: FavoritesRepository, alice: UserSession
) -> None:
    """Separate views of the same book race exactly like the repository does."""

    async with FavoriteWatcher(repository, alice, KEY) as tab_one, \
            FavoriteWatcher(repository, alice, KEY) as tab_two:
        await asyncio.gather(tab_one.toggle(DUNE), tab_two.toggle(DUNE))

        assert tab_one.is_favorite and tab_two.is_favorite

    assert len(await repository.list(alice)) == 2


@pytest.mark.asyncio
async def test_polling_picks_up_changes_made_elsewhere(
    repository: FavoritesRepository, alice: UserSession
) -> None:
    async with FavoriteWatcher(repository, alice, KEY, poll_interval=0.01) as watcher:
        changes = watcher.changes()
        assert await _next_status(changes) is FavoriteStatus.NOT_FAVORITED

        record_id = await repository.add(alice, DUNE)
        assert await _next_status(changes) is FavoriteStatus.FAVORITED
        assert watcher.record_id == record_id

        await repository.remove(alice, record_id)
        assert await _next_status(changes) is FavoriteStatus.NOT_FAVORITED


@pytest.mark.asyncio
async def test_without_interval_there_is_no_polling(
    repository: FavoritesRepository, memory_store: MemoryStore, alice: UserSession
) -> None:
    async with FavoriteWatcher(repository, alice, KEY):
        await asyncio.sleep(0.05)

    assert memory_store.calls == ["list"]


@pytest.mark.asyncio
async def test_close_stops_polling_and_ends_changes(
    repository: FavoritesRepository, memory_store: MemoryStore, alice: UserSession
) -> None:
    watcher = FavoriteWatcher(repository, alice, KEY, poll_interval=0.01)
    await watcher.start()
    await watcher.close()
    calls_at_close = len(memory_store.calls)

    await asyncio.sleep(0.05)

    assert len(memory_store.calls) == calls_at_close
    assert watcher.alive is False
    seen = [status async for status in watcher.changes()]
    assert seen == [FavoriteStatus.NOT_FAVORITED]


@pytest.mark.asyncio
async def test_result_arriving_after_close_is_discarded(
    repository: FavoritesRepository, memory_store: MemoryStore, alice: UserSession
) -> None:
    await repository.add(alice, DUNE)
    memory_store.gate = asyncio.Event()
    watcher = FavoriteWatcher(repository, alice, KEY)

    pending = asyncio.create_task(watcher.refresh())
    await asyncio.sleep(0.01)
    await watcher.close()
    memory_store.gate.set()
    await pending

    assert watcher.status is FavoriteStatus.CHECKING
    assert watcher.record_id is None


@pytest.mark.asyncio
async def test_closed_watcher_refuses_toggles(
    repository: FavoritesRepository, alice: UserSession
) -> None:
    watcher = FavoriteWatcher(repository, alice, KEY)
    await watcher.close()

    with pytest.raises(FavoriteToggleError):
        await watcher.toggle(DUNE)


def test_poll_interval_must_be_positive(repository: FavoritesRepository, alice: UserSession) -> None:
    with pytest.raises(ValueError):
        FavoriteWatcher(repository, alice, KEY, poll_interval=0)


@pytest.mark.asyncio
async def test_list_view_reloads_everything_after_toggle(
    repository: FavoritesRepository, memory_store: MemoryStore, alice: UserSession
) -> None:
    await repository.add(alice, DUNE)
    view = FavoritesListView(repository, alice, refresh_delay=0)

    assert [item["key"] for item in await view.load()] == [KEY]

    memory_store.calls.clear()
    result = await view.toggle(KEY)

    assert result.is_favorite is False
    assert view.items == []
    assert memory_store.calls == ["list", "delete", "list"]


@pytest.mark.asyncio
async def test_list_view_toggle_failure_keeps_items(
    repository: FavoritesRepository, memory_store: MemoryStore, alice: UserSession
) -> None:
    await repository.add(alice, DUNE)
    view = FavoritesListView(repository, alice, refresh_delay=0)
    await view.load()

    memory_store.failing = True
    with pytest.raises(FavoriteToggleError):
        await view.toggle(KEY)

    assert [item["key"] for item in view.items] == [KEY]


@pytest.mark.asyncio
async def test_list_view_load_failure_propagates(
    repository: FavoritesRepository, memory_store: MemoryStore, alice: UserSession
) -> None:
    memory_store.failing = True
    view = FavoritesListView(repository, alice)

    with pytest.raises(StoreUnavailable):
        await view.load()


@pytest.mark.asyncio
async def test_lookup_answered_after_a_toggle_does_not_revert_it(alice: UserSession) -> None:
    store = HeldReplyStore()
    repository = FavoritesRepository(store)

    async with FavoriteWatcher(repository, alice, KEY) as watcher:
        assert watcher.status is FavoriteStatus.NOT_FAVORITED

        reply = asyncio.Event()
        store.hold = reply
        stale_lookup = asyncio.create_task(watcher.refresh())
        await asyncio.sleep(0.01)

        result = await watcher.toggle(DUNE)
        assert watcher.status is FavoriteStatus.FAVORITED

        reply.set()
        await stale_lookup

        assert watcher.status is FavoriteStatus.FAVORITED
        assert watcher.record_id == result.record_id
        assert len(await repository.list(alice)) == 1


@pytest.mark.asyncio
async def test_changes_keeps_only_the_latest_status(
    repository: FavoritesRepository, alice: UserSession
) -> None:
    async with FavoriteWatcher(repository, alice, KEY) as watcher:
        for _ in range(4):
            await watcher.toggle(DUNE)

        changes = watcher.changes()
        assert await _next_status(changes) is FavoriteStatus.NOT_FAVORITED

        await watcher.toggle(DUNE)
        assert await _next_status(changes) is FavoriteStatus.FAVORITED

    assert [status async for status in changes] == []
