"""
Token authentication for the API.

Subclasses Django REST framework's ``TokenAuthentication`` so the
project has a stable import path for its configuration.  Tokens issued
at login are sent as ``Authorization: Token <key>``; JWT bearer tokens
are handled by simplejwt alongside this class.
"""
from __future__ import annotations

from rest_framework import authentication, exceptions


class TokenAuthentication(authentication.TokenAuthentication):
    """DRF token authentication that also rejects deactivated accounts."""

    keyword = 'Token'

    def authenticate_credentials(self, key):
        user, token = super().authenticate_credentials(key)
        if not user.is_active:
            raise exceptions.AuthenticationFailed('User inactive or deleted.')
        return user, token
