"""FastAPI dependencies for company/warehouse extraction and validation."""

from fastapi import HTTPException, Path


def _validate_scope_id(kind: str, value: str) -> str:
    if not value.replace("_", "").replace("-", "").isalnum():
        raise HTTPException(
            status_code=400,
            detail=f"Invalid {kind} ID format: '{value}'. "
                   f"Must be alphanumeric with underscores or dashes."
        )
    return value


async def get_company_id(
    company_id: str = Path(..., description="Company ID", min_length=1, max_length=64)
) -> str:
    """Extract and validate company_id from URL path.

    Raises 400 if format is invalid.
    """
    return _validate_scope_id("company", company_id)


async def get_warehouse_id(
    warehouse_id: str = Path(..., description="Warehouse ID", min_length=1, max_length=64)
) -> str:
    """Extract and validate warehouse_id from URL path."""
    return _validate_scope_id("warehouse", warehouse_id)
