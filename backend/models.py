from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

MIN_HEIGHT_PX = 400
MAX_HEIGHT_PX = 3000
DEFAULT_HEIGHT_PX = 800

ZOOM_CHOICES: tuple[str, ...] = (
    "Page Width",
    "Whole Page",
    "50",
    "75",
    "100",
    "125",
    "150",
    "200",
)


class SampleOutcome(str, Enum):
    ACCEPTED = "accepted"
    JITTER = "jitter"
    SUPPRESSED_SHRINK = "suppressed_shrink"
    AUTO_FIT_DISABLED = "auto_fit_disabled"
    STALE = "stale"
    IGNORED = "ignored"
    DISPOSED = "disposed"


class ViewerConfig(BaseModel):
    """
    Declarative viewer configuration supplied by the hosting page.

    Field names accept both snake_case and the host framework's camelCase.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    report_url: str = Field(
        default="",
        validation_alias=AliasChoices("report_url", "reportUrl"),
        description="Full report address, e.g. https://host/ReportServer/Pages/ReportViewer.aspx?/Folder/Report",
    )
    show_toolbar: bool = Field(default=False, validation_alias=AliasChoices("show_toolbar", "showToolbar"))
    show_parameters: bool = Field(default=False, validation_alias=AliasChoices("show_parameters", "showParameters"))
    report_parameters: str = Field(
        default="",
        validation_alias=AliasChoices("report_parameters", "reportParameters"),
        description='JSON object text, e.g. {"Year":"2024","Month":"12"}',
    )
    height: int = Field(default=DEFAULT_HEIGHT_PX, description="Declared (initial) height in pixels")
    auto_fit_height: bool = Field(default=True, validation_alias=AliasChoices("auto_fit_height", "autoFitHeight"))
    zoom: str = Field(default="100")

    @field_validator("report_url", "report_parameters", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("height", mode="before")
    @classmethod
    def clamp_height(cls, v: Any) -> int:
        if v is None or v == "":
            return DEFAULT_HEIGHT_PX
        try:
            value = int(round(float(v)))
        except (TypeError, ValueError) as e:
            raise ValueError("height must be a number of pixels") from e
        return max(MIN_HEIGHT_PX, min(MAX_HEIGHT_PX, value))

    @field_validator("zoom", mode="before")
    @classmethod
    def validate_zoom(cls, v: Any) -> str:
        if v is None:
            return ""
        text = str(v).strip()
        if text.endswith("%"):
            text = text[:-1].strip()
        if text and text not in ZOOM_CHOICES:
            raise ValueError(f"zoom must be one of: {', '.join(ZOOM_CHOICES)}")
        return text

    def address_key(self) -> tuple[str, bool, bool, str, str]:
        """Fields that feed address composition."""
        return (self.report_url, self.show_toolbar, self.show_parameters, self.zoom, self.report_parameters)

    def display_key(self) -> tuple[bool, bool, str]:
        """Fields whose change opens the shrink-allowance window."""
        return (self.show_toolbar, self.show_parameters, self.zoom)


class ComposeResponse(BaseModel):
    url: str
    custom_parameters_valid: bool = True


class SyncStateView(BaseModel):
    last_accepted_height: int
    shrink_allowed: bool
    shrink_window_expiry: Optional[float] = None
    display_height: int
    auto_fit: bool


class FrameState(BaseModel):
    frame_id: str
    generation: int
    url: str
    configured: bool
    display_height: int
    sync: SyncStateView
    config: ViewerConfig


class ConfigChangeResponse(BaseModel):
    frame: FrameState
    reloaded: bool = False
    settings_changed: bool = False
    height_reset: bool = False
    auto_fit_changed: bool = False


class SampleRequest(BaseModel):
    """One message forwarded from the report frame by the host page."""
    generation: int = Field(ge=0)
    data: Any = None


class SampleResponse(BaseModel):
    outcome: SampleOutcome
    display_height: int
    generation: int


class MeasurementResult(BaseModel):
    """Outcome of measuring one report offline."""
    success: bool
    url: str
    final_url: str
    height: Optional[int] = None
    strategy: Optional[Literal["report_div", "viewer_table", "document"]] = None
    error: Optional[str] = None
