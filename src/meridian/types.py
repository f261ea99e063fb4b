"""Shared types for the meridian package."""

from datetime import date
from decimal import Decimal
from typing import Any

Row = dict[str, Any]
Params = tuple | list | dict
ParamsList = list[tuple] | list[list]

RateMap = dict[str, Decimal]
DateLike = date | str | None
