from fastapi import Header, HTTPException, status

from nodectl.services.control_context import get_ctx


def _expected_token() -> str | None:
    return get_ctx().settings.token


async def require_token(
    x_nodectl_token: str | None = Header(default=None),
    authorization: str | None = Header(default=None),
) -> None:
    """
    Если NODECTL_TOKEN задан, принимаем либо X-Nodectl-Token, либо Authorization: Bearer <token>.
    Без токена в настройках API открыт (локальный тестовый стенд).
    """
    expected = _expected_token()
    if not expected:
        return

    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    elif x_nodectl_token:
        token = x_nodectl_token

    if token != expected:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing X-Nodectl-Token",
        )
