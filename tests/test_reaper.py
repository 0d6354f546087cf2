import threading

import pytest

from mediavault.reaper import ReapReport, ReaperThread, TrashReaper

GIB = 1024 ** 3


@pytest.fixture
def reaper(services):
    return services.reaper


@pytest.mark.integration
def test_trashed_gigabyte_is_reaped_after_grace_period(services, reaper, make_media, reload_media, blob_store, clock):
    media = make_media(size=GIB)
    quota = services.media.get_quota(1)
    assert quota.used_bytes == 1073741824
    assert quota.percentage == pytest.approx(1073741824 / 16106127360 * 100)

    assert services.media.trash(1, media.id).quota.used_bytes == 0

    clock.advance(days=14, hours=23)
    assert reaper.run_once() == ReapReport(scanned=0, deleted=0, failed=0)

    clock.advance(hours=1)
    assert reaper.run_once() == ReapReport(scanned=1, deleted=1, failed=0)
    assert reload_media(media.id) is None
    assert blob_store.destroyed == [(media.object_id, "image")]

    # Second pass finds nothing left to do.
    assert reaper.run_once() == ReapReport(scanned=0, deleted=0, failed=0)
    assert blob_store.destroyed == [(media.object_id, "image")]


def test_restored_media_is_never_reaped(services, reaper, make_media, reload_media, clock):
    media = make_media()
    services.media.trash(1, media.id)
    services.media.restore(1, media.id)
    clock.advance(days=30)

    assert reaper.run_once().scanned == 0
    assert reload_media(media.id) is not None


def test_reaper_covers_every_user(services, reaper, make_media, clock):
    mine = make_media(user_id=1)
    theirs = make_media(user_id=2)
    services.media.trash(1, mine.id)
    services.media.trash(2, theirs.id)
    clock.advance(days=16)

    assert reaper.run_once().deleted == 2


def test_blob_failure_still_removes_the_record(services, reaper, make_media, reload_media, blob_store, clock):
    media = make_media()
    services.media.trash(1, media.id)
    blob_store.fail_destroy = True
    clock.advance(days=15)

    report = reaper.run_once()

    assert report.deleted == 1
    assert reload_media(media.id) is None


def test_one_failing_item_does_not_stop_the_run(services, reaper, make_media, reload_media, clock, monkeypatch):
    bad = make_media()
    good = make_media()
    services.media.bulk_trash(1, [bad.id, good.id])
    clock.advance(days=15)

    original = reaper._reap

    def flaky(media_id, now):
        if media_id == bad.id:
            raise RuntimeError("database hiccup")
        return original(media_id, now)

    monkeypatch.setattr(reaper, "_reap", flaky)

    report = reaper.run_once()

    assert report == ReapReport(scanned=2, deleted=1, failed=1)
    assert reload_media(bad.id).in_trash is True
    assert reload_media(good.id) is None


def test_reaping_refreshes_album_cover(services, reaper, make_media, reload_album, clock):
    album = services.albums.create(1, "Trip")
    first = make_media()
    second = make_media()
    services.albums.add_media(1, album.id, first.id)
    clock.advance(minutes=1)
    services.albums.add_media(1, album.id, second.id)
    services.media.trash(1, first.id)
    clock.advance(days=15)

    reaper.run_once()

    assert reload_album(album.id).cover_url == second.url


class CountingReaper:
    def __init__(self, fail=False):
        self.calls = 0
        self.fail = fail
        self.ran = threading.Event()

    def run_once(self):
        self.calls += 1
        self.ran.set()
        if self.fail:
            raise RuntimeError("boom")
        return ReapReport(scanned=0, deleted=0, failed=0)


def test_reaper_thread_runs_immediately_and_stops():
    counting = CountingReaper()
    thread = ReaperThread(counting, interval=3600)

    thread.start()
    assert counting.ran.wait(5)
    assert thread.running is True

    thread.stop(timeout=5)
    assert thread.running is False
    assert counting.calls == 1


def test_reaper_thread_survives_errors():
    counting = CountingReaper(fail=True)
    thread = ReaperThread(counting, interval=3600)
    thread.start()
    assert counting.ran.wait(5)
    assert thread.running is True
    thread.stop(timeout=5)
    assert thread.running is False


def test_trash_reaper_expired_ids_ordered_by_schedule(database, blob_store, services, make_media, clock):
    first = make_media()
    second = make_media()
    services.media.trash(1, first.id)
    clock.advance(hours=1)
    services.media.trash(1, second.id)
    clock.advance(days=20)

    reaper = TrashReaper(database, blob_store, clock=clock)
    assert reaper.expired_ids(clock()) == [first.id, second.id]
