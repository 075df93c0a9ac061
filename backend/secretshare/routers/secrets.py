from fastapi import APIRouter, Depends, Request

from secretshare.middleware.rate_limit import get_real_client_ip, rate_limit
from secretshare.schemas.secret import (
    SecretContentResponse,
    SecretCreate,
    SecretCreateResponse,
    SecretView,
)
from secretshare.services.secret_service import SecretService

router = APIRouter()


def get_secret_service(request: Request) -> SecretService:
    """Dependency returning the service built at startup."""
    return request.app.state.context.service


# Handlers stay sync: the store does blocking file I/O.


@router.post(
    "/secrets",
    response_model=SecretCreateResponse,
    dependencies=[Depends(rate_limit("create_secret"))],
)
def create_secret(
    request: Request,
    secret_data: SecretCreate,
    service: SecretService = Depends(get_secret_service),
):
    """
    Store a client-encrypted secret.

    Returns only the new id; the custom name and password are never echoed back.
    """
    secret_id = service.create_secret(
        secret_data.encrypted_content.to_content(),
        captcha_token=secret_data.captcha_token,
        custom_name=secret_data.custom_name,
        expires_at=secret_data.expires_at,
        max_views=secret_data.max_views,
        client_ip=get_real_client_ip(request),
    )
    return SecretCreateResponse(id=secret_id)


@router.post(
    "/secrets/name/{name}",
    response_model=SecretContentResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(rate_limit("view_secret_by_name"))],
)
def view_secret_by_name(
    name: str,
    request: Request,
    view_data: SecretView,
    service: SecretService = Depends(get_secret_service),
):
    """
    Retrieve a secret's ciphertext by custom name.

    Burn-after-reading secrets are deleted before the response is sent.
    """
    content = service.get_secret_by_name(
        name,
        captcha_token=view_data.captcha_token,
        client_ip=get_real_client_ip(request),
    )
    return SecretContentResponse.from_content(content)


@router.post(
    "/secrets/{secret_id}",
    response_model=SecretContentResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(rate_limit("view_secret"))],
)
def view_secret(
    secret_id: str,
    request: Request,
    view_data: SecretView,
    service: SecretService = Depends(get_secret_service),
):
    """
    Retrieve a secret's ciphertext by id.

    Burn-after-reading secrets are deleted before the response is sent.
    """
    content = service.get_secret(
        secret_id,
        captcha_token=view_data.captcha_token,
        client_ip=get_real_client_ip(request),
    )
    return SecretContentResponse.from_content(content)
