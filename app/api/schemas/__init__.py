"""API schemas."""
from app.api.schemas.resource import ResourceCreate, ResourceFields, ResourceRead, ReviewCreate, ReviewRead

__all__ = ["ResourceCreate", "ResourceFields", "ResourceRead", "ReviewCreate", "ReviewRead"]
