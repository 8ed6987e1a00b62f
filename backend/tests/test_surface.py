"""Tests for the embedding surface: config binding, generations, message handling."""
from engine.reconcile import SyncPolicy
from models import SampleOutcome, ViewerConfig
from services.surface import EmbeddingSurface, parse_height_message

REPORT_URL = "https://host/ReportServer/Pages/ReportViewer.aspx?/Finance/Budget&Year=2024"


class FakeClock:
    def __init__(self) -> None:
        self.now = 50.0

    def __call__(self) -> float:
        return self.now


def _surface(**config) -> tuple[EmbeddingSurface, FakeClock]:
    clock = FakeClock()
    values = {"report_url": REPORT_URL}
    values.update(config)
    surface = EmbeddingSurface(
        "frame-1",
        ViewerConfig(**values),
        policy=SyncPolicy(),
        clock=clock,
        toolbar_mode="stylesheet",
    )
    return surface, clock


def test_placeholder_when_no_address():
    surface, _ = _surface(report_url="")
    assert surface.configured is False
    assert surface.generation == 0
    assert surface.url == ""
    page = surface.render()
    assert "Please configure the Report URL" in page
    assert "<iframe" not in page


def test_render_embeds_composed_address_at_display_height():
    surface, _ = _surface()
    assert surface.generation == 1
    assert surface.url.startswith("https://host/reports/report?%2fFinance%2fBudget&Year=2024&rs%3AEmbed=true")
    page = surface.render()
    assert "<iframe" in page
    assert 'title="SSRS Report Viewer"' in page
    assert "height: 800px" in page
    assert "&amp;Year=2024" in page
    assert 'var generation = 1;' in page


def test_zoom_change_reloads_and_opens_shrink_window():
    surface, _ = _surface()
    assert surface.receive_message({"reportHeight": 1200}, 1) == SampleOutcome.ACCEPTED
    change = surface.apply_config(surface.config.model_copy(update={"zoom": "75"}))
    assert change.reloaded is True
    assert change.settings_changed is True
    assert change.height_reset is False
    assert surface.generation == 2
    assert "rc%3AZoom=75" in surface.url
    assert surface.reconciler.state.shrink_allowed is True
    assert surface.receive_message({"reportHeight": 600}, 2) == SampleOutcome.ACCEPTED
    assert surface.display_height == 625


def test_stale_generation_sample_is_dropped():
    surface, _ = _surface()
    surface.apply_config(surface.config.model_copy(update={"show_toolbar": True}))
    assert surface.generation == 2
    assert surface.receive_message({"reportHeight": 1500}, 1) == SampleOutcome.STALE
    assert surface.display_height == 800


def test_unrelated_messages_are_ignored():
    surface, _ = _surface()
    for payload in (None, "height", {"other": 1}, {"reportHeight": "900"}, {"reportHeight": True}, [900]):
        assert surface.receive_message(payload, 1) == SampleOutcome.IGNORED
    assert surface.display_height == 800


def test_declared_height_change_only_resets_height():
    surface, _ = _surface()
    surface.receive_message({"reportHeight": 1200}, 1)
    change = surface.apply_config(surface.config.model_copy(update={"height": 1000}))
    assert change.height_reset is True
    assert change.reloaded is False
    assert change.settings_changed is False
    assert surface.display_height == 1000
    assert surface.reconciler.state.last_accepted_height == 1000


def test_malformed_parameter_text_keeps_address():
    surface, _ = _surface()
    url_before = surface.url
    change = surface.apply_config(surface.config.model_copy(update={"report_parameters": '{"Month":"12"'}))
    assert change.reloaded is False
    assert surface.url == url_before
    assert surface.custom_parameters_valid is False


def test_auto_fit_toggle_through_config():
    surface, _ = _surface()
    surface.receive_message({"reportHeight": 1200}, 1)
    change = surface.apply_config(surface.config.model_copy(update={"auto_fit_height": False}))
    assert change.auto_fit_changed is True
    assert surface.display_height == 800
    assert surface.receive_message({"reportHeight": 1600}, 1) == SampleOutcome.AUTO_FIT_DISABLED
    surface.apply_config(surface.config.model_copy(update={"auto_fit_height": True}))
    assert surface.display_height == 1225


def test_dispose_blocks_further_changes():
    surface, _ = _surface()
    surface.dispose()
    assert surface.receive_message({"reportHeight": 1200}, 1) == SampleOutcome.DISPOSED
    change = surface.apply_config(surface.config.model_copy(update={"zoom": "200"}))
    assert change.reloaded is False
    assert surface.generation == 1


def test_snapshot_reports_sync_state():
    surface, _ = _surface(height=900)
    state = surface.snapshot()
    assert state.frame_id == "frame-1"
    assert state.display_height == 900
    assert state.sync.last_accepted_height == 900
    assert state.sync.shrink_allowed is False
    assert state.config.report_url == REPORT_URL


def test_parse_height_message_rounds_numbers():
    assert parse_height_message({"reportHeight": 812.6}) == 813
    assert parse_height_message({"reportHeight": 700, "extra": "x"}) == 700
    assert parse_height_message({"reportHeight": float("nan")}) is None


def test_clearing_address_reloads_into_polling_placeholder():
    surface, _ = _surface()
    change = surface.apply_config(surface.config.model_copy(update={"report_url": ""}))
    assert change.reloaded is True
    assert surface.generation == 2
    page = surface.render()
    assert "<iframe" not in page
    assert "Please configure the Report URL" in page
    assert "var generation = 2;" in page
    assert "setInterval" in page
