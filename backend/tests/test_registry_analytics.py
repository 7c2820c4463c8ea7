"""
Dashboard aggregations: distributions, performance tables, weekly winners and
report filters.
"""
from datetime import date, datetime, timezone

from identity_access.domain import AccountStatus
from registry import analytics
from registry.analytics import MemberFilter
from registry.models import Member, MemberStatus, Organisation, Volunteer

UTC = timezone.utc


def _member(mid, *, vol="v1", org="o1", when=None, **kw):
    base = dict(
        id=mid,
        aadhaar=kw.pop("aadhaar", f"{mid:0>12}"),
        mobile=kw.pop("mobile", "9000000000"),
        name=kw.pop("name", "Anil"),
        surname=kw.pop("surname", "Kumar"),
        volunteer_id=vol,
        organisation_id=org,
        submission_date=when,
    )
    base.update(kw)
    return Member(**base)


def test_distribution_lists_every_category_and_ignores_unknown():
    members = [
        _member("1", gender="Male"),
        _member("2", gender="Female"),
        _member("3", gender="Female"),
        _member("4", gender="Robot"),
    ]
    assert analytics.gender_distribution(members) == [("Male", 1), ("Female", 2), ("Other", 0)]
    occ = dict(analytics.occupation_distribution(members))
    assert occ["Other"] == 4
    assert sum(occ.values()) == 4
    assert dict(analytics.support_distribution([]))["Medical"] == 0


def test_with_enrollments_counts_and_names_anonymous():
    vols = [Volunteer(id="v1", name="Ravi"), Volunteer(id="v2", name="")]
    members = [_member("1", vol="v1"), _member("2", vol="v1"), _member("3", vol="v2")]
    out = analytics.with_enrollments(vols, members)
    assert [(v.name, v.enrollments) for v in out] == [("Ravi", 2), (analytics.ANONYMOUS_VOLUNTEER_NAME, 1)]
    # originals untouched
    assert vols[1].name == ""


def test_organisation_performance_sorted_by_enrollments_stable_on_ties():
    orgs = [Organisation(id="a", name="Alpha"), Organisation(id="b", name="Beta"), Organisation(id="c", name="Gamma")]
    members = [_member("1", org="c"), _member("2", org="c"), _member("3", org="b")]
    perf = analytics.organisation_performance(orgs, members)
    assert [(p.organisation.name, p.enrollments) for p in perf] == [("Gamma", 2), ("Beta", 1), ("Alpha", 0)]
    assert len(analytics.top_organisations(orgs, members, n=2)) == 2


def test_top_volunteers_limit():
    vols = [Volunteer(id=str(i), name=f"V{i}", enrollments=i) for i in range(8)]
    top = analytics.top_volunteers(vols)
    assert len(top) == analytics.LEADERBOARD_SIZE
    assert top[0].enrollments == 7


def test_search_by_organisation_mobile_narrows_volunteers():
    perf = [
        analytics.OrganisationPerformance(Organisation(id="a", name="A", mobile="9876543210"), 1),
        analytics.OrganisationPerformance(Organisation(id="b", name="B", mobile="9111111111"), 0),
    ]
    vols = [Volunteer(id="v1", name="X", organisation_id="a"), Volunteer(id="v2", name="Y", organisation_id="b")]
    orgs, matched = analytics.search_by_organisation_mobile("6543", perf, vols)
    assert [r.organisation.id for r in orgs] == ["a"]
    assert [v.id for v in matched] == ["v1"]
    assert analytics.search_by_organisation_mobile("  ", perf, vols) == (perf, vols)


def test_week_window_starts_monday_and_sunday_belongs_to_previous_week():
    sunday = datetime(2024, 5, 12, 18, 30, tzinfo=UTC)
    start, end = analytics.week_window(sunday)
    assert start == datetime(2024, 5, 6, tzinfo=UTC)
    assert end == datetime(2024, 5, 13, tzinfo=UTC)

    monday = datetime(2024, 5, 13, 0, 0)
    assert analytics.week_window(monday)[0] == datetime(2024, 5, 13, tzinfo=UTC)


def test_weekly_winners_counts_current_week_only():
    now = datetime(2024, 5, 9, 12, tzinfo=UTC)
    vols = [Volunteer(id="v1", name="Zara"), Volunteer(id="v2", name="Amit")]
    orgs = [Organisation(id="o1", name="One"), Organisation(id="o2", name="Two")]
    members = [
        _member("1", vol="v1", org="o1", when=datetime(2024, 5, 6, 0, 0, tzinfo=UTC)),
        _member("2", vol="v2", org="o2", when=datetime(2024, 5, 8, tzinfo=UTC)),
        _member("3", vol="v2", org="o2", when=datetime(2024, 5, 12, 23, 59, tzinfo=UTC)),
        # previous week
        _member("4", vol="v1", org="o1", when=datetime(2024, 5, 5, 23, 59, tzinfo=UTC)),
        _member("5", vol="v1", org="o1", when=datetime(2024, 5, 1, tzinfo=UTC)),
        _member("6", vol="v1", org="o1", when=None),
    ]
    winners = analytics.weekly_winners(members, vols, orgs, now=now)
    assert winners.volunteer.id == "v2"
    assert winners.volunteer_enrollments == 2
    assert winners.organisation.id == "o2"
    assert winners.week_start == datetime(2024, 5, 6, tzinfo=UTC)


def test_weekly_winner_ties_go_to_first_name():
    now = datetime(2024, 5, 9, tzinfo=UTC)
    vols = [Volunteer(id="v1", name="zara"), Volunteer(id="v2", name="Amit")]
    members = [
        _member("1", vol="v1", when=datetime(2024, 5, 7, tzinfo=UTC)),
        _member("2", vol="v2", when=datetime(2024, 5, 7, tzinfo=UTC)),
    ]
    assert analytics.weekly_winners(members, vols, [], now=now).volunteer.name == "Amit"


def test_empty_week_has_no_winners():
    winners = analytics.weekly_winners([], [], [], now=datetime(2024, 5, 9, tzinfo=UTC))
    assert winners.volunteer is None
    assert winners.organisation is None
    assert winners.volunteer_enrollments == 0


def test_filter_members_end_date_is_inclusive():
    late = _member("1", when=datetime(2024, 5, 10, 23, 59, 59, tzinfo=UTC))
    next_day = _member("2", when=datetime(2024, 5, 11, 0, 0, tzinfo=UTC))
    undated = _member("3", when=None)
    out = analytics.filter_members([late, next_day, undated], MemberFilter(end_date=date(2024, 5, 10)))
    assert [m.id for m in out] == ["1"]

    out = analytics.filter_members([late, next_day, undated], MemberFilter(start_date=date(2024, 5, 11)))
    assert [m.id for m in out] == ["2"]


def test_filter_members_by_volunteer_status_search_phone_area():
    members = [
        _member("1", vol="v1", name="Sita", mobile="9812345678", pincode="560001", status=MemberStatus.ACCEPTED),
        _member("2", vol="v2", name="Gita", mobile="9000000001", pincode="110001"),
    ]
    assert [m.id for m in analytics.filter_members(members, MemberFilter(volunteer_id="v2"))] == ["2"]
    assert [m.id for m in analytics.filter_members(members, MemberFilter(status=MemberStatus.ACCEPTED))] == ["1"]
    assert [m.id for m in analytics.filter_members(members, MemberFilter(search="SITA"))] == ["1"]
    assert [m.id for m in analytics.filter_members(members, MemberFilter(phone="0001"))] == ["2"]
    assert [m.id for m in analytics.filter_members(members, MemberFilter(area="5600"))] == ["1"]
    assert MemberFilter().is_empty
    assert not MemberFilter(area="1").is_empty


def test_display_name():
    assert analytics.display_name("aNIL ", " kumar") == "Anil Kumar"
    assert analytics.display_name(None) == ""


def test_volunteer_status_is_carried_through_enrollments():
    vols = [Volunteer(id="v1", name="R", status=AccountStatus.DEACTIVATED)]
    assert analytics.with_enrollments(vols, [])[0].status is AccountStatus.DEACTIVATED
