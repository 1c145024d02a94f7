"""
Request and response models for the Authorization Service API.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from .assignments.models import Assignment
from .hierarchy.models import AuthItem, ItemType


class AccessCheckRequest(BaseModel):
    """Request model for an access check."""
    item_name: str = Field(..., description="Operation, task or role to check")
    user_id: Union[str, int] = Field(..., description="User ID")
    params: Dict[str, Any] = Field(default_factory=dict, description="Parameters for business rules")


class AccessCheckResponse(BaseModel):
    """Response model for an access check."""
    allowed: bool = Field(..., description="Whether the user may perform the item")
    item_name: str
    user_id: str


class AssignmentCreateRequest(BaseModel):
    """Request model for assigning an item to a user."""
    item_name: str = Field(..., description="Item name")
    user_id: Union[str, int] = Field(..., description="User ID")
    business_rule: Optional[Union[List[Dict[str, Any]], Dict[str, Any]]] = Field(
        None, description="Business rule conditions for this assignment"
    )
    data: Any = Field(None, description="Data passed to the business rule")


class AssignmentUpdateRequest(BaseModel):
    """Request model for updating an assignment."""
    business_rule: Optional[Union[List[Dict[str, Any]], Dict[str, Any]]] = Field(
        None, description="Business rule conditions for this assignment"
    )
    data: Any = Field(None, description="Data passed to the business rule")


class AssignmentResponse(BaseModel):
    """Response model for assignment operations."""
    item_name: str
    user_id: str
    business_rule: Optional[Any] = None
    data: Any = None

    @classmethod
    def from_assignment(cls, assignment: Assignment) -> "AssignmentResponse":
        return cls(**assignment.to_dict())


class AssignmentListResponse(BaseModel):
    """Response model for a user's assignments."""
    user_id: str
    assignments: List[AssignmentResponse]
    total: int


class ItemResponse(BaseModel):
    """Response model for an authorization item."""
    name: str
    type: ItemType
    description: Optional[str] = None
    business_rule: Optional[Any] = None
    data: Any = None
    children: List[str] = Field(default_factory=list)

    @classmethod
    def from_item(cls, item: AuthItem) -> "ItemResponse":
        return cls(
            name=item.name,
            type=item.type,
            description=item.description,
            business_rule=item.business_rule,
            data=item.data,
            children=sorted(item.children),
        )


class ItemListResponse(BaseModel):
    """Response model for item lists."""
    items: List[ItemResponse]
    total: int
