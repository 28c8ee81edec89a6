"""get_date_time tool.

Tools: get_date_time
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field

from ._base import ToolContext, ToolDef


class DateTimeArgs(BaseModel):
    format: Literal["iso", "human", "timestamp"] = Field("human", description="The format to return the date/time in")
    timezone: str | None = Field(
        None, description='The timezone to use (IANA timezone format, e.g. "America/New_York")'
    )


def format_human(moment: datetime) -> str:
    """e.g. "Sunday, October 18, 2026 at 3:04:05 PM"."""
    hour = moment.hour % 12 or 12
    return f"{moment:%A, %B} {moment.day}, {moment.year} at {hour}:{moment:%M:%S %p}"


def get_date_time(args: DateTimeArgs, ctx: ToolContext, now: datetime | None = None) -> str:
    """Current date/time. Timezone applies to the human format."""
    now = now or datetime.now(UTC)

    if args.format == "iso":
        return now.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    if args.format == "timestamp":
        return str(int(now.timestamp() * 1000))

    if args.timezone:
        try:
            return format_human(now.astimezone(ZoneInfo(args.timezone)))
        except (ZoneInfoNotFoundError, ValueError):
            local = format_human(now.astimezone())
            return f'Error: Invalid timezone "{args.timezone}". Using local timezone instead.\n{local}'
    return format_human(now.astimezone())


TOOL = ToolDef(
    name="get_date_time",
    description="Get the current date and time, optionally in a specific format and timezone",
    args_model=DateTimeArgs,
    handler=get_date_time,
    emoji="🕒",
)
