"""Pydantic models for inventory vertex types and API request/response schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


# --- Core vertex models ---


class LocationModel(BaseModel):
    location_id: str
    warehouse_id: str
    location_path: str
    location_name_path: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ItemModel(BaseModel):
    item_id: str
    company_id: str
    name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TransactionFileModel(BaseModel):
    transaction_file_id: str
    company_id: str
    warehouse_id: str
    file_name: str
    file_extension: Optional[str] = None
    file_path_url: Optional[str] = None
    created_at: Optional[datetime] = None


class TransactionRecordModel(BaseModel):
    record_id: str
    company_id: str
    warehouse_id: str
    location_id: str
    item_id: str
    transaction_file_id: Optional[str] = None
    transaction_type: str = ""
    order_number: str = ""
    description: str = ""
    transaction_quantity: int = 0
    completed_quantity: int = 0
    completed_date: Optional[datetime] = None
    created_at: Optional[datetime] = None


# --- Transaction file API models ---


class TransactionFileUploadResponse(BaseModel):
    transaction_file_id: str
    status: str
    records_created: int
    message: str
    stats: dict = {}


class TransactionFileResponse(BaseModel):
    transaction_file_id: str
    company_id: str
    warehouse_id: str
    file_name: str
    file_extension: Optional[str] = None
    file_path_url: Optional[str] = None
    created_at: Optional[datetime] = None
