"""Rendering checks for the shared UI components."""
from identity_access.domain import Identity, Role
from registry.live_feed import MarqueeItem
from web.components import BarChart, DataTable, FlashMessages, Leaderboard, MarqueeStrip, Navigation
from web.components.charts import width_step


def _identity(role, **kw):
    return Identity(id="u1", name="Asha <Admin>", email="a@example.com", role=role, **kw)


def test_width_step_rounds_to_classes():
    assert width_step(0, 0) == 0
    assert width_step(0, 10) == 0
    assert width_step(10, 10) == 100
    assert width_step(5, 10) == 50
    assert width_step(1, 100) == 5


def test_bar_chart_keeps_zero_buckets():
    html = BarChart("Gender", [("Male", 2), ("Female", 0)]).render()
    assert "w-100" in html
    assert "w-0" in html
    assert "style=" not in html


def test_navigation_by_role_and_active_link():
    html = Navigation(_identity(Role.ORGANISATION, organisation_name="Seva"), "/organisation/volunteers", "tok").render()
    assert 'href="/organisation/volunteers" class="sidebar-link active"' in html
    assert "Seva" in html
    assert 'action="/logout"' in html
    assert "Asha &lt;Admin&gt;" in html


def test_navigation_while_reset_pending_shows_only_password():
    nav = Navigation(_identity(Role.VOLUNTEER, password_reset_pending=True), "/volunteer")
    assert nav.items() == [("/volunteer", "Change password", "\U0001F512")]


def test_anonymous_navigation_offers_sign_in():
    html = Navigation(None, "/").render()
    assert 'href="/login"' in html
    assert "/logout" not in html


def test_data_table_escapes_except_raw_columns():
    html = DataTable(["A", "B"], [["<b>x</b>", "<i>ok</i>"]], raw_columns={1}, table_id="t").render()
    assert "&lt;b&gt;x&lt;/b&gt;" in html
    assert "<i>ok</i>" in html
    assert 'id="t"' in html
    assert "empty-state" in DataTable(["A"], [], empty_text="None").render()


def test_flash_kinds_fall_back_to_info():
    html = FlashMessages([("weird", "Hello"), ("error", "Bad")]).render()
    assert 'class="flash flash-info"' in html
    assert 'role="alert"' in html
    assert FlashMessages([]).render() == ""


def test_marquee_highlights_recent_items():
    items = [MarqueeItem(id="1", label="New", highlight_until=20.0), MarqueeItem(id="2", label="Old")]
    html = MarqueeStrip("Organisations", items, now=10.0, strip_id="marquee-orgs").render()
    assert html.count("marquee-item--new") == 1
    assert "Waiting for the first registrations." in MarqueeStrip("X", [], now=0, strip_id="x").render()


def test_leaderboard_ranks():
    html = Leaderboard("Top", [("A", "Org", 3), ("B", "", 1)]).render()
    assert 'leaderboard-rank">1<' in html
    assert 'leaderboard-rank">2<' in html
    assert "No enrollments yet." in Leaderboard("Top", []).render()
