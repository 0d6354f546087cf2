import datetime as dt

import pytest

from mediavault.errors import Conflict, Forbidden, InvalidArgument, NotFound, Unauthorized
from mediavault.locked import LockedFolderManager, REFERENCE_LENGTH

pytestmark = pytest.mark.locked

PASSWORD = "hunter22"


@pytest.fixture
def locked(services):
    return services.locked


def test_set_password_grants_access(locked, clock):
    assert locked.has_password(1) is False

    record = locked.set_password(1, PASSWORD)

    assert locked.has_password(1) is True
    assert record.password_hash != PASSWORD
    assert record.session_expires_at == clock() + dt.timedelta(minutes=5)
    assert locked.check_access(1) is True


def test_short_password_is_rejected(locked):
    with pytest.raises(InvalidArgument):
        locked.set_password(1, "12345")
    assert locked.has_password(1) is False


def test_verify_password_without_record_is_not_found(locked):
    with pytest.raises(NotFound):
        locked.verify_password(1, PASSWORD)


def test_verify_wrong_password_is_unauthorized(locked):
    locked.set_password(1, PASSWORD)
    locked.clear_access(1)
    with pytest.raises(Unauthorized):
        locked.verify_password(1, "wrong-password")
    with pytest.raises(InvalidArgument):
        locked.verify_password(1, "")
    assert locked.check_access(1) is False


def test_access_expires_after_five_minutes(locked, clock):
    locked.set_password(1, PASSWORD)
    locked.clear_access(1)
    locked.verify_password(1, PASSWORD)

    clock.advance(minutes=4, seconds=59)
    assert locked.check_access(1) is True
    clock.advance(seconds=2)
    assert locked.check_access(1) is False
    with pytest.raises(Forbidden):
        locked.list_locked(1)


def test_check_access_does_not_extend_the_window(locked, clock):
    locked.set_password(1, PASSWORD)
    clock.advance(minutes=3)
    assert locked.check_access(1) is True
    clock.advance(minutes=2, seconds=1)
    assert locked.check_access(1) is False


def test_refresh_extends_from_the_time_of_the_call(locked, clock):
    start = clock()
    locked.set_password(1, PASSWORD)
    clock.advance(minutes=4)

    expires_at = locked.refresh_access(1)

    assert expires_at == start + dt.timedelta(minutes=9)
    clock.advance(minutes=4, seconds=59)
    assert locked.check_access(1) is True


def test_refresh_after_expiry_is_unauthorized(locked, clock):
    locked.set_password(1, PASSWORD)
    clock.advance(minutes=6)
    with pytest.raises(Unauthorized):
        locked.refresh_access(1)
    with pytest.raises(Unauthorized):
        locked.refresh_access(2)


def test_clear_access_closes_the_window(locked, make_media):
    make_media(locked=True)
    locked.set_password(1, PASSWORD)
    assert len(locked.list_locked(1)) == 1

    locked.clear_access(1)

    with pytest.raises(Forbidden):
        locked.list_locked(1)


def test_sessions_are_per_user(locked):
    locked.set_password(1, PASSWORD)
    assert locked.check_access(2) is False
    with pytest.raises(Forbidden):
        locked.list_locked(2)


def test_list_locked_is_newest_first_and_excludes_unlocked(locked, make_media, clock):
    older = make_media(locked=True)
    clock.advance(minutes=1)
    newer = make_media(locked=True)
    make_media()
    locked.set_password(1, PASSWORD)

    items = locked.list_locked(1)

    assert [m.id for m, _ in items] == [newer.id, older.id]
    for media, reference in items:
        assert len(reference) == REFERENCE_LENGTH
        assert reference == locked.reference_for(media)


def test_reference_is_stable_and_secret_dependent(services, database, make_media):
    media = make_media(locked=True)
    first = services.locked.reference_for(media)
    assert services.locked.reference_for(media) == first

    other = LockedFolderManager(database, reference_secret="another-secret")
    assert other.reference_for(media) != first


def test_access_by_reference_resolves_the_item(locked, make_media):
    media = make_media(locked=True)
    locked.set_password(1, PASSWORD)
    reference = locked.reference_for(media)

    assert locked.access_by_reference(1, reference).url == media.url


def test_access_by_reference_errors(locked, make_media, clock):
    media = make_media(locked=True)
    locked.set_password(1, PASSWORD)

    with pytest.raises(InvalidArgument):
        locked.access_by_reference(1, "not-a-reference")
    with pytest.raises(NotFound):
        locked.access_by_reference(1, "0" * REFERENCE_LENGTH)
    # Another user's session cannot reach this user's items.
    locked.set_password(2, PASSWORD)
    with pytest.raises(NotFound):
        locked.access_by_reference(2, locked.reference_for(media))

    clock.advance(minutes=10)
    with pytest.raises(Forbidden):
        locked.access_by_reference(1, locked.reference_for(media))


def test_locked_media_cannot_be_trashed_out_of_sight(services, locked, make_media, reload_media):
    media = make_media(locked=True)

    with pytest.raises(Conflict):
        services.media.trash(1, media.id)
    assert services.media.bulk_trash(1, [media.id]).count == 0

    locked.set_password(1, PASSWORD)
    assert [m.id for m, _ in locked.list_locked(1)] == [media.id]
    assert services.media.list_trash(1) == []
    assert reload_media(media.id).scheduled_delete_at is None
