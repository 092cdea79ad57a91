from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    """Wire names are camelCase, python attributes snake_case"""

    model_config = ConfigDict(populate_by_name=True)


class NonceResponse(BaseModel):
    """Response model for nonce generation - output"""

    nonce: str = ""


class ConnectRequest(BaseModel):
    """Request model for wallet connect - checked by the service so missing fields get a clear message"""

    address: Optional[str] = Field(None, description="Stellar wallet address (G...)")
    signature: Optional[str] = Field(
        None, description='Base64 ed25519 signature of {"nonce":"<nonce>"}'
    )


class ConnectResponse(CamelModel):
    """Response model for wallet connect - output"""

    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")


class RefreshResponse(CamelModel):
    """Response model for token refresh; refreshToken only when rotation is on"""

    access_token: str = Field(..., alias="accessToken")
    refresh_token: Optional[str] = Field(None, alias="refreshToken")


class MeResponse(BaseModel):
    id: str
    address: str


class Message(BaseModel):
    message: str = ""


class ErrorResponse(BaseModel):
    status: str = "fail"
    message: str = ""
