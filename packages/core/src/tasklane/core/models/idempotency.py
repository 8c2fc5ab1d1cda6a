"""IdempotencyRecord Domain Model

以 (tenant_id, workspace_id, action, key) 为唯一键，记录某次写操作的结果，
相同 key 的后续请求直接回放 response_snapshot。记录创建后不再修改。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import IdempotencyAction, IdempotencyReferenceType


class IdempotencyRecordCreate(BaseModel):
    """待写入的幂等记录（id / created_at 由 Store 分配）"""

    tenant_id: str
    workspace_id: str
    action: IdempotencyAction
    key: str
    reference_id: str
    reference_type: IdempotencyReferenceType
    request_fingerprint: str
    response_snapshot: dict[str, Any]
    expired_at: datetime


class IdempotencyRecord(BaseModel):
    """IdempotencyRecord 数据模型"""

    id: str = Field(description="唯一标识，ULID 格式")
    tenant_id: str = Field(description="租户标识")
    workspace_id: str = Field(description="工作区标识")
    action: IdempotencyAction = Field(description="操作类型")
    key: str = Field(description="调用方提供的幂等键")
    reference_id: str = Field(description="操作产生/影响的实体 ID")
    reference_type: IdempotencyReferenceType = Field(description="实体类型")
    request_fingerprint: str = Field(description="逻辑请求的哈希（sha256 hex）")
    response_snapshot: dict[str, Any] = Field(description="需回放的结果快照")
    created_at: datetime = Field(description="创建时间")
    expired_at: datetime = Field(description="过期时间（仅记录，不强制）")
