from datetime import timedelta

from django.conf import settings
from django.utils import timezone
from rest_framework.authentication import TokenAuthentication
from rest_framework.authtoken.models import Token
from rest_framework.exceptions import AuthenticationFailed


def token_expires_at(token):
    return token.created + timedelta(hours=settings.AUTH_TOKEN_TTL_HOURS)


def is_token_expired(token) -> bool:
    return timezone.now() >= token_expires_at(token)


def issue_token(user):
    """Return a valid token for the user, replacing an expired one."""
    token, created = Token.objects.get_or_create(user=user)
    if not created and is_token_expired(token):
        token.delete()
        token = Token.objects.create(user=user)
    return token


class ExpiringTokenAuthentication(TokenAuthentication):
    """`Authorization: Bearer <key>` tokens that stop working after AUTH_TOKEN_TTL_HOURS."""

    keyword = "Bearer"

    def authenticate_credentials(self, key):
        user, token = super().authenticate_credentials(key)
        if is_token_expired(token):
            raise AuthenticationFailed("Token inválido o expirado")
        return user, token
