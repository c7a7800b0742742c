"""
安全相关功能
JWT 签发与校验，以及从请求中解析当前调用者
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config.settings import settings
from ..models.user import Actor, UserRole
from .exceptions import AuthenticationError


class SecurityManager:
    """安全管理器"""

    def __init__(self, secret: Optional[str] = None, algorithm: Optional[str] = None):
        self.secret = secret or settings.jwt_secret_key
        self.algorithm = algorithm or settings.jwt_algorithm

    def create_jwt_token(self, user_id: int, role: UserRole = UserRole.CUSTOMER,
                         additional_claims: Dict[str, Any] = None) -> str:
        """创建JWT token"""
        now = datetime.now(timezone.utc)
        payload = {
            "user_id": user_id,
            "role": UserRole(role).value,
            "exp": now + timedelta(hours=settings.jwt_expire_hours),
            "iat": now,
        }
        if additional_claims:
            payload.update(additional_claims)
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_jwt_token(self, token: str) -> Dict[str, Any]:
        """解码JWT token"""
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise AuthenticationError(f"Invalid token: {e}")

    def actor_from_token(self, token: str) -> Actor:
        """从token中提取调用者"""
        payload = self.decode_jwt_token(token)
        user_id = payload.get("user_id")
        if user_id is None:
            raise AuthenticationError("Token missing user_id")
        try:
            role = UserRole(payload.get("role", UserRole.CUSTOMER.value))
        except ValueError:
            raise AuthenticationError("Token has unknown role")
        return Actor(user_id=int(user_id), role=role)


# 全局安全管理器实例
security_manager = SecurityManager()

_bearer = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)
) -> Actor:
    """从Authorization header中解析当前调用者"""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError()
    return security_manager.actor_from_token(credentials.credentials)
