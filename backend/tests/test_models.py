"""Tests for ViewerConfig validation."""
import pytest
from pydantic import ValidationError

from models import MAX_HEIGHT_PX, MIN_HEIGHT_PX, ViewerConfig


def test_defaults_follow_host_framework():
    c = ViewerConfig()
    assert c.report_url == ""
    assert c.height == 800
    assert c.auto_fit_height is True
    assert c.zoom == "100"
    assert c.show_toolbar is False
    assert c.show_parameters is False
    assert c.report_parameters == ""


def test_camel_case_names_accepted():
    c = ViewerConfig.model_validate(
        {
            "reportUrl": " https://host/ReportServer?/F/R ",
            "showToolbar": True,
            "showParameters": True,
            "reportParameters": '{"Year":"2024"}',
            "autoFitHeight": False,
            "zoom": "Whole Page",
        }
    )
    assert c.report_url == "https://host/ReportServer?/F/R"
    assert c.show_toolbar is True
    assert c.show_parameters is True
    assert c.report_parameters == '{"Year":"2024"}'
    assert c.auto_fit_height is False
    assert c.zoom == "Whole Page"


def test_height_is_clamped_into_operator_range():
    assert ViewerConfig(height=100).height == MIN_HEIGHT_PX
    assert ViewerConfig(height=5000).height == MAX_HEIGHT_PX
    assert ViewerConfig(height="850").height == 850
    assert ViewerConfig(height=None).height == 800


def test_height_must_be_numeric():
    with pytest.raises(ValidationError):
        ViewerConfig(height="tall")


def test_zoom_choices():
    assert ViewerConfig(zoom="125%").zoom == "125"
    assert ViewerConfig(zoom=150).zoom == "150"
    assert ViewerConfig(zoom=None).zoom == ""
    with pytest.raises(ValidationError):
        ViewerConfig(zoom="33")


def test_address_and_display_keys():
    c = ViewerConfig(report_url="https://host/r", zoom="75", show_toolbar=True)
    assert c.address_key() == ("https://host/r", True, False, "75", "")
    assert c.display_key() == (True, False, "75")


def test_config_is_immutable():
    c = ViewerConfig()
    with pytest.raises(ValidationError):
        c.zoom = "200"
