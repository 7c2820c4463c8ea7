"""
Live marquee feed: snapshot loading, realtime changes, highlight expiry and
the realtime bridge wiring.
"""
import pytest

from registry.live_feed import (
    CHANNEL_NAME,
    ORG_HIGHLIGHT_SECONDS,
    VOLUNTEER_HIGHLIGHT_SECONDS,
    LiveFeed,
    RealtimeBridge,
    parse_realtime_payload,
)
from registry.models import Organisation, Volunteer
from registry.repo import InMemoryRegistryRepo


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def _feed():
    clock = FakeClock()
    feed = LiveFeed(clock=clock)
    feed.load(
        [Organisation(id="o1", name="Alpha", secretary_name="A"), Organisation(id="o2", name="Beta")],
        [Volunteer(id="v1", name="Ravi", organisation_id="o1")],
    )
    return feed, clock


def test_load_keeps_given_order_and_fills_org_names():
    feed, _ = _feed()
    assert [i.id for i in feed.organisations()] == ["o1", "o2"]
    vols = feed.volunteers()
    assert vols[0].label == "Ravi"
    assert vols[0].detail == "Alpha"
    assert feed.loaded


def test_snapshot_from_repo_lists_newest_volunteer_first():
    repo = InMemoryRegistryRepo()
    org = repo.insert_organisation(name="Seva Trust", mobile="9876543210", secretary_name="Sec")
    repo.insert_organisation(name="Annapurna", mobile="9876543211", secretary_name="Sec")
    for uid, name, created in (
        ("v-old", "Old", "2024-05-01T09:00:00+00:00"),
        ("v-mid", "Mid", "2024-05-02T09:00:00+00:00"),
        ("v-new", "New", "2024-05-03T09:00:00+00:00"),
    ):
        repo.upsert_profile({"id": uid, "name": name, "role": "Volunteer", "organisation_id": org.id, "created_at": created})

    feed = LiveFeed(clock=FakeClock())
    feed.load(repo.list_organisations(), repo.list_volunteers())

    assert [i.label for i in feed.volunteers()] == ["New", "Mid", "Old"]
    assert [i.label for i in feed.organisations()] == ["Annapurna", "Seva Trust"]
    assert feed.volunteers()[0].detail == "Seva Trust"


def test_sync_reloads_only_when_ids_change():
    feed, _ = _feed()
    rev = feed.revision
    orgs = [Organisation(id="o1", name="Alpha"), Organisation(id="o2", name="Beta")]
    vols = [Volunteer(id="v1", name="Ravi")]
    assert feed.sync(orgs, vols) is False
    assert feed.revision == rev
    assert feed.sync(orgs + [Organisation(id="o3", name="Gamma")], vols) is True
    assert feed.revision > rev


def test_insert_is_prepended_highlighted_and_expires():
    feed, clock = _feed()
    rev = feed.revision
    feed.apply_change("organisations", "insert", {"id": "o3", "name": "Gamma", "secretary_name": "G"})

    first = feed.organisations()[0]
    assert first.id == "o3"
    assert first.highlighted(clock.now)
    after_insert = feed.revision
    assert after_insert > rev

    clock.now += ORG_HIGHLIGHT_SECONDS + 1
    assert not feed.organisations()[0].highlighted(clock.now)
    # expiry bumps the revision exactly once
    expired_rev = feed.revision
    assert expired_rev == after_insert + 1
    assert feed.revision == expired_rev


def test_duplicate_insert_updates_in_place():
    feed, _ = _feed()
    feed.apply_change("organisations", "INSERT", {"id": "o3", "name": "Gamma"})
    feed.apply_change("organisations", "INSERT", {"id": "o3", "name": "Gamma Trust"})
    orgs = feed.organisations()
    assert [i.id for i in orgs].count("o3") == 1
    assert orgs[0].label == "Gamma Trust"


def test_update_keeps_position_and_highlight():
    feed, clock = _feed()
    feed.apply_change("organisations", "INSERT", {"id": "o3", "name": "Gamma"})
    until = feed.organisations()[0].highlight_until
    feed.apply_change("organisations", "UPDATE", {"id": "o1", "name": "Alpha Renamed"})
    feed.apply_change("organisations", "UPDATE", {"id": "o3", "name": "Gamma 2"})
    orgs = feed.organisations()
    assert [i.id for i in orgs] == ["o3", "o1", "o2"]
    assert orgs[0].highlight_until == until
    assert orgs[1].label == "Alpha Renamed"


def test_delete_removes_items():
    feed, _ = _feed()
    feed.apply_change("organisations", "DELETE", None, {"id": "o1"})
    feed.apply_change("profiles", "DELETE", None, {"id": "v1"})
    assert [i.id for i in feed.organisations()] == ["o2"]
    assert feed.volunteers() == []


def test_volunteer_profile_insert_and_role_filter():
    feed, clock = _feed()
    feed.apply_change("profiles", "INSERT", {"id": "v2", "name": "Asha", "role": "agent", "organisation_id": "o2"})
    feed.apply_change("profiles", "INSERT", {"id": "a1", "name": "Boss", "role": "MasterAdmin"})
    vols = feed.volunteers()
    assert [i.id for i in vols] == ["v2", "v1"]
    assert vols[0].detail == "Beta"
    assert vols[0].highlight_until == clock.now + VOLUNTEER_HIGHLIGHT_SECONDS

    # a role change away from volunteer drops the item
    feed.apply_change("profiles", "UPDATE", {"id": "v2", "role": "Organisation"})
    assert [i.id for i in feed.volunteers()] == ["v1"]


def test_member_changes_leave_the_strips_alone():
    feed, _ = _feed()
    rev = feed.revision
    feed.apply_change("members", "INSERT", {"id": "m1"})
    assert feed.revision == rev
    assert not feed.changed_since(rev)
    assert feed.changed_since(None)


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"data": {"type": "INSERT", "record": {"id": "1"}, "old_record": None}}, ("INSERT", {"id": "1"}, None)),
        ({"eventType": "UPDATE", "new": {"id": "2"}, "old": {"id": "2"}}, ("UPDATE", {"id": "2"}, {"id": "2"})),
        ("garbage", ("", None, None)),
        ({"data": "oops"}, ("", None, None)),
    ],
)
def test_parse_realtime_payload(payload, expected):
    assert parse_realtime_payload(payload) == expected


class FakeChannel:
    def __init__(self):
        self.handlers = {}
        self.subscribed = False

    def on_postgres_changes(self, event, *, schema, table, callback):
        self.handlers[table] = callback
        return self

    async def subscribe(self):
        self.subscribed = True


class FakeAsyncClient:
    def __init__(self):
        self.channel_obj = FakeChannel()
        self.channel_names = []
        self.removed = False

    def channel(self, name):
        self.channel_names.append(name)
        return self.channel_obj

    async def remove_all_channels(self):
        self.removed = True


@pytest.mark.anyio
async def test_realtime_bridge_subscribes_and_forwards_changes():
    client = FakeAsyncClient()

    async def factory(url, key):
        assert (url, key) == ("https://x.supabase.co", "anon")
        return client

    feed, _ = _feed()
    bridge = RealtimeBridge(feed, "https://x.supabase.co", "anon", client_factory=factory)
    assert await bridge.start() is True
    assert client.channel_names == [CHANNEL_NAME]
    assert set(client.channel_obj.handlers) == {"members", "profiles", "organisations"}
    assert client.channel_obj.subscribed

    client.channel_obj.handlers["organisations"]({"data": {"type": "INSERT", "record": {"id": "o9", "name": "New"}}})
    assert feed.organisations()[0].id == "o9"

    await bridge.stop()
    assert client.removed


@pytest.mark.anyio
async def test_realtime_bridge_failure_is_reported_not_raised():
    async def factory(url, key):
        raise ConnectionError("no route")

    bridge = RealtimeBridge(LiveFeed(), "https://x.supabase.co", "anon", client_factory=factory)
    assert await bridge.start() is False
    await bridge.stop()
