"""
Pydantic models for catalog API requests and responses.
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List

from carcatalog.core.session import CatalogReadModel
from carcatalog.pipeline.view_models import view_to_dict


class CreateSessionRequest(BaseModel):
    """Request model for opening a browsing session."""
    route: str = Field(default="brands", description="'brands' or 'brands/<slug>'")
    platform: Optional[str] = Field(default=None, description="'desktop_web' or 'mobile' (config default if not provided)")
    focused: bool = Field(default=True, description="Whether the view starts focused")
    order_by: str = Field(default="name", description="'name' or 'country'")
    grouped: bool = Field(default=True, description="Section the result under group labels")


class QueryRequest(BaseModel):
    """Filter and ordering update. Omitted filter fields are inactive."""
    text: Optional[str] = Field(default=None, description="Case-insensitive title substring")
    fuel_type: Optional[str] = None
    body_type: Optional[str] = None
    drive_type: Optional[str] = None
    country: Optional[str] = None
    seat_count: Optional[int] = Field(default=None, description="Required seat count (0 = any)")
    year_range: Optional[List[int]] = Field(default=None, description="[min_year, max_year]")
    order_by: Optional[str] = Field(default=None, description="'name' or 'country'")
    grouped: Optional[bool] = None


class FocusRequest(BaseModel):
    focused: bool


class GroupPayload(BaseModel):
    label: str
    items: List[Dict[str, Any]]


class ReadModelResponse(BaseModel):
    """Response model for the session read model."""
    session_id: str
    route: str
    strategy: str
    status: str
    records: List[Dict[str, Any]] = Field(default_factory=list, description="Visible records in display order")
    groups: List[GroupPayload] = Field(default_factory=list, description="Visible records sectioned by label")
    is_loading: bool = False
    error: Optional[str] = None
    visible_page: int = 1
    has_more: bool = False
    total: int = 0
    page_size: int = 0
    filter_options: Dict[str, List[str]] = Field(default_factory=dict)

    @classmethod
    def from_read_model(
        cls,
        session_id: str,
        model: CatalogReadModel,
        filter_options: Optional[Dict[str, List[str]]] = None,
    ) -> "ReadModelResponse":
        return cls(
            session_id=session_id,
            route=model.route,
            strategy=model.strategy.value,
            status=model.status.value,
            records=[view_to_dict(view) for view in model.records],
            groups=[
                GroupPayload(label=group.label, items=[view_to_dict(view) for view in group.items])
                for group in model.groups
            ],
            is_loading=model.is_loading,
            error=str(model.error) if model.error is not None else None,
            visible_page=model.visible_page,
            has_more=model.has_more,
            total=model.total,
            page_size=model.page_size,
            filter_options=filter_options or {},
        )


class AdvanceResponse(ReadModelResponse):
    advanced: bool = Field(default=False, description="False when the request was dropped")


class HealthResponse(BaseModel):
    """Response model for health check."""
    status: str
    service: str
    version: str
    config: Dict[str, Any]
