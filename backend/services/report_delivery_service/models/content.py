"""
Content model: presentations, templates, slides and elements.

A Presentation (fixed report) or ReportTemplate references an ordered list
of Slides. Each Slide holds an ordered list of Elements. Elements are a
tagged union on "type":

    - text:   static text
    - image:  static image
    - metric: a single headline value, optionally bound to a query
    - query:  a table bound to a query

Metric and query elements carry the results of their last refresh. The
refresh engine overwrites those results in place; the authored half of the
element (its query, position and style) is never changed outside the
report designer.

Unknown attributes on elements and their content are preserved so that
slides written by the designer round-trip through this service unchanged.
"""

from decimal import Decimal
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


def format_metric_value(value: Any, fmt: str | None = None) -> str:
    """
    Format a metric value for display.

    fmt is one of "currency", "percent", "number" or None (as-is).
    Non-numeric values are returned as strings unchanged.
    """
    if value is None:
        return ""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return str(value)
    if fmt == "currency":
        return f"${value:,.2f}"
    if fmt == "percent":
        return f"{value:,.1f}%"
    if fmt == "number":
        return f"{value:,.0f}" if float(value).is_integer() else f"{value:,.2f}"
    return str(value)


class Position(BaseModel):
    """Element rectangle on the slide canvas."""

    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0


class DataSource(BaseModel):
    """Query an element is bound to, with an optional row limit."""

    query: str = ""
    limit: int | None = Field(default=None, ge=1)


class _ElementBase(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    position: Position = Field(default_factory=Position)
    style: dict[str, Any] = Field(default_factory=dict)

    @property
    def bound_query(self) -> str | None:
        return None


class TextContent(BaseModel):
    model_config = ConfigDict(extra="allow")

    text: str = ""


class TextElement(_ElementBase):
    type: Literal["text"] = "text"
    content: TextContent = Field(default_factory=TextContent)


class ImageContent(BaseModel):
    model_config = ConfigDict(extra="allow")

    src: str = ""
    alt: str = ""


class ImageElement(_ElementBase):
    type: Literal["image"] = "image"
    content: ImageContent = Field(default_factory=ImageContent)


class MetricContent(BaseModel):
    """
    Headline metric payload.

    value is the authored fallback shown before the first refresh. data
    holds the rows of the last refresh, keyed by column name. query is the
    legacy location of the bound query, still honoured when data_source is
    absent.
    """

    model_config = ConfigDict(extra="allow")

    label: str = ""
    value: Any = None
    format: str | None = None
    query: str | None = None
    data: list[dict[str, Any]] = Field(default_factory=list)


class MetricElement(_ElementBase):
    type: Literal["metric"] = "metric"
    data_source: DataSource | None = None
    content: MetricContent = Field(default_factory=MetricContent)

    @property
    def bound_query(self) -> str | None:
        if self.data_source and self.data_source.query.strip():
            return self.data_source.query
        if self.content.query and self.content.query.strip():
            return self.content.query
        return None

    def display_value(self) -> str:
        """First value of the first refreshed row, else the authored value."""
        if self.content.data:
            value = next(iter(self.content.data[0].values()), None)
        else:
            value = self.content.value
        return format_metric_value(value, self.content.format)


class QueryElement(_ElementBase):
    """Tabular element. data holds the last refresh as column-keyed rows."""

    type: Literal["query"] = "query"
    data_source: DataSource | None = None
    data: list[dict[str, Any]] = Field(default_factory=list)
    columns: list[str] = Field(default_factory=list)

    @property
    def bound_query(self) -> str | None:
        if self.data_source and self.data_source.query.strip():
            return self.data_source.query
        return None


Element = Annotated[
    Union[TextElement, ImageElement, MetricElement, QueryElement],
    Field(discriminator="type"),
]


class Slide(BaseModel):
    id: str
    title: str = ""
    elements: list[Element] = Field(default_factory=list)
    background_color: str = "#ffffff"
    background_image: str | None = None


class Presentation(BaseModel):
    """
    A fixed report, rendered exactly as authored.

    Presentations generated by a template send are "scheduled" instances
    that point back at the template and the job that produced them.
    """

    id: str
    title: str
    description: str = ""
    slide_ids: list[str] = Field(default_factory=list)
    instance_type: Literal["authored", "scheduled"] = "authored"
    template_id: str | None = None
    scheduled_report_id: str | None = None


class ReportTemplate(BaseModel):
    """A reusable report whose data elements are refreshed before every send."""

    id: str
    name: str
    description: str = ""
    slide_ids: list[str] = Field(default_factory=list)


class RefreshReport(BaseModel):
    """Outcome of a refresh pass over a set of elements."""

    refreshed_count: int = 0
    failed_element_ids: list[str] = Field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed_element_ids)


class ResolvedContent(BaseModel):
    """Slides ready to render for one execution of a job."""

    kind: Literal["report", "template"]
    content_id: str
    title: str
    slides: list[Slide] = Field(default_factory=list)
    refresh: RefreshReport | None = None
    snapshot_id: str | None = None

    @property
    def elements(self) -> list[Any]:
        return [element for slide in self.slides for element in slide.elements]

    @property
    def metric_elements(self) -> list[MetricElement]:
        return [e for e in self.elements if isinstance(e, MetricElement)]


def data_bound_elements(elements: list[Any]) -> list[Any]:
    """Metric and query elements carrying a non-blank bound query."""
    return [e for e in elements if getattr(e, "bound_query", None)]
