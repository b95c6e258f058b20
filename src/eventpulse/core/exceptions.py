"""EventPulse 异常体系

ValidationError: 输入不合法，在任何存储访问之前拒绝。
DuplicateRequest: 幂等键已被 claim 且未过期 -- 表示"已经成功过"，不是失败。
StorageFailure: 存储层不可用；写入侧未提交任何内容，可用同一 token 重试；
rollup 侧可对同一天重跑（upsert 覆盖）。
"""

from typing import Any


class EventPulseError(Exception):
    """EventPulse 基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试或重跑恢复
        """
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


class ValidationError(EventPulseError):
    """请求缺失必要字段或格式错误"""

    def __init__(self, message: str, details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message, recoverable=False)
        self.details = details or []


class DuplicateRequest(EventPulseError):
    """幂等键已在保留窗口内被使用

    调用方应视为该批次已被成功应用，不应重试。
    """

    def __init__(self, token: str) -> None:
        super().__init__(f"幂等键已被使用: {token}", recoverable=False)
        self.token = token


class StorageFailure(EventPulseError):
    """存储层写入/读取失败，事务已回滚"""

    def __init__(self, operation: str, original_error: Exception) -> None:
        """
        Args:
            operation: 失败的操作名（ingest/rollup/...）
            original_error: 原始异常
        """
        super().__init__(
            f"存储操作失败: {operation} -- {original_error}",
            recoverable=True,
        )
        self.operation = operation
        self.original_error = original_error
