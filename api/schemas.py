from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class PercentPolicyModel(BaseModel):
    threshold: float = 1.5
    trust_percent_sign: bool = False


class EligibilityModel(BaseModel):
    min_fraction: float = 0.5
    sample_size: int = 100


class WidthBoundsModel(BaseModel):
    min_width: int = 72
    text_max_width: int = 360
    numeric_max_width: int = 160
    padding: int = 24
    sample_rows: int = 100
    font_size: int = 13
    font_path: Optional[str] = None


class ChartOptionsModel(BaseModel):
    title: Optional[str] = None
    candidates: Dict[str, List[str]] = Field(default_factory=dict)
    percent: PercentPolicyModel = Field(default_factory=PercentPolicyModel)
    eligibility: EligibilityModel = Field(default_factory=EligibilityModel)
    match: str = "exact"


class TableOptionsModel(BaseModel):
    title: Optional[str] = None
    columns: Optional[List[str]] = None
    percent_columns: Optional[List[str]] = None
    max_rows: Optional[int] = None
    widths: WidthBoundsModel = Field(default_factory=WidthBoundsModel)
    percent: PercentPolicyModel = Field(default_factory=PercentPolicyModel)


class ChartRequest(BaseModel):
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    students_total: Optional[float] = None
    options: ChartOptionsModel = Field(default_factory=ChartOptionsModel)
    vega_lite: bool = True


class TableRequest(BaseModel):
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    options: TableOptionsModel = Field(default_factory=TableOptionsModel)


class EchoBlock(BaseModel):
    summary: List[Dict[str, Any]] = Field(default_factory=list)
    modules: List[Dict[str, Any]] = Field(default_factory=list)


class GradesBlock(BaseModel):
    summary: List[Dict[str, Any]] = Field(default_factory=list)
    module_metrics: List[Dict[str, Any]] = Field(default_factory=list)


class DashboardRequest(BaseModel):
    echo: EchoBlock = Field(default_factory=EchoBlock)
    grades: GradesBlock = Field(default_factory=GradesBlock)
    students_total: Optional[float] = None
    vega_lite: bool = True
