import json
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator

from models import DesignType


class RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


def _parse_design_types(value):
    if value is None or value == []:
        return None
    if isinstance(value, str):
        value = [v for v in value.split(',') if v.strip()]
    return [DesignType.parse(v) for v in value]


class UserInfo(RequestModel):
    dealership_name: Optional[str] = Field(None, alias='dealershipName', max_length=255)
    sap_code: Optional[str] = Field(None, alias='sapCode', max_length=50)
    mobile_number: Optional[str] = Field(None, alias='mobileNumber', max_length=20)


class UploadForm(RequestModel):
    """Multipart fields of a storefront upload."""
    user_id: Optional[int] = Field(None, alias='userId')
    user_info: Optional[UserInfo] = Field(None, alias='userInfo')

    @field_validator('user_id', mode='before')
    @classmethod
    def drop_client_placeholder(cls, value):
        # The client sends ids like "temp_123" before it knows the server id
        if value is None:
            return None
        value = str(value).strip()
        if not value.isdigit() or int(value) <= 0:
            return None
        return int(value)

    @field_validator('user_info', mode='before')
    @classmethod
    def load_user_info(cls, value):
        if value in (None, '', 'undefined', 'null'):
            return None
        if isinstance(value, str):
            return json.loads(value)
        return value


class InteriorUploadForm(RequestModel):
    user_id: PositiveInt = Field(alias='userId')
    storefront_design_id: PositiveInt = Field(alias='storefrontDesignId')


class GenerateRequest(RequestModel):
    upload_id: PositiveInt = Field(alias='uploadId')
    user_id: Optional[PositiveInt] = Field(None, alias='userId')
    design_types: Optional[List[DesignType]] = Field(None, alias='designTypes')

    @field_validator('design_types', mode='before')
    @classmethod
    def parse_design_types(cls, value):
        return _parse_design_types(value)


class InteriorGenerateRequest(GenerateRequest):
    user_id: PositiveInt = Field(alias='userId')


class SingleGenerateRequest(RequestModel):
    upload_id: PositiveInt = Field(alias='uploadId')
    user_id: Optional[PositiveInt] = Field(None, alias='userId')
    design_type: DesignType = Field(alias='designType')

    @field_validator('design_type', mode='before')
    @classmethod
    def parse_design_type(cls, value):
        return DesignType.parse(value)


class OwnerQuery(RequestModel):
    user_id: PositiveInt = Field(alias='userId')


class DesignListQuery(RequestModel):
    upload_id: Optional[PositiveInt] = Field(None, alias='uploadId')
    design_type: Optional[DesignType] = Field(None, alias='designType')
    is_interior: Optional[bool] = Field(None, alias='isInterior')

    @field_validator('design_type', mode='before')
    @classmethod
    def parse_design_type(cls, value):
        if value in (None, ''):
            return None
        return DesignType.parse(value)


class ContestSubmitRequest(RequestModel):
    user_id: PositiveInt = Field(alias='userId')
    storefront_design_id: PositiveInt = Field(alias='storefrontDesignId')
    interior_design_id: PositiveInt = Field(alias='interiorDesignId')
    dealership_name: Optional[str] = Field(None, alias='dealershipName', max_length=255)
    sap_code: Optional[str] = Field(None, alias='sapCode', max_length=50)
    mobile_number: Optional[str] = Field(None, alias='mobileNumber', max_length=20)


class CheckSubmissionQuery(RequestModel):
    user_id: PositiveInt = Field(alias='userId')
    storefront_design_id: PositiveInt = Field(alias='storefrontDesignId')
    interior_design_id: PositiveInt = Field(alias='interiorDesignId')


class LeaderboardQuery(RequestModel):
    limit: int = Field(50, ge=1, le=500)
    status: str = 'submitted'


class ShareRequest(RequestModel):
    user_id: PositiveInt = Field(alias='userId')
    design_id: PositiveInt = Field(alias='designId')
    platform: str = Field('unknown', max_length=50)


class ShareListQuery(RequestModel):
    platform: Optional[str] = None
    contest_only: bool = Field(False, alias='contestOnly')
