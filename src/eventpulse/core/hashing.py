"""来源 IP 哈希 -- HMAC-SHA256，事件中不保存原始 IP"""

import hashlib
import hmac


def hash_ip(ip: str | None, salt: str) -> str | None:
    """计算 IP 的 HMAC-SHA256 十六进制摘要

    Args:
        ip: 来源 IP，缺失时返回 None
        salt: HMAC key

    Returns:
        64 位十六进制摘要或 None
    """
    if not ip:
        return None
    return hmac.new(salt.encode("utf-8"), ip.encode("utf-8"), hashlib.sha256).hexdigest()
