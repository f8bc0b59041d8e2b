# core/supabase_auth.py
# Custom DRF authentication class to verify Supabase JWTs

import logging
import jwt
from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed

logger = logging.getLogger("marketplace")

User = get_user_model()


class SupabaseJWTAuthentication(BaseAuthentication):
    """
    Custom authentication class that validates Supabase JWTs.

    This authenticator:
    1. Extracts the JWT from the Authorization header
    2. Verifies the token signature using the Supabase JWT secret
    3. Looks up or creates a Django user based on the token email,
       taking the marketplace role from user_metadata.account_type
    """

    def authenticate(self, request):
        auth_header = request.headers.get("Authorization", "")

        if not auth_header.startswith("Bearer "):
            return None  # Let other auth backends handle it

        token = auth_header.split(" ")[1]

        supabase_jwt_secret = settings.SUPABASE_JWT_SECRET
        if not supabase_jwt_secret:
            logger.debug("SUPABASE_JWT_SECRET not configured")
            return None

        try:
            # Supabase uses HS256 by default
            payload = jwt.decode(
                token,
                supabase_jwt_secret,
                algorithms=["HS256"],
                audience="authenticated",
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationFailed("Token has expired")
        except jwt.InvalidTokenError as e:
            logger.debug(f"Invalid Supabase token: {e}")
            return None  # Let other auth backends try

        if not payload.get("sub"):
            raise AuthenticationFailed("Invalid token: missing user ID")

        user = self._get_or_create_user(payload)
        return (user, payload)

    def _get_or_create_user(self, payload: dict):
        """
        Get or create a Django user for the token.

        Email is the mapping key; the role is only set on creation so an
        admin-side change is never overwritten by a stale token claim.
        """
        email = payload.get("email")
        if not email:
            raise AuthenticationFailed("Token missing email claim")

        try:
            return User.objects.get(email=email)
        except User.DoesNotExist:
            pass

        metadata = payload.get("user_metadata") or {}
        role = metadata.get("account_type")
        if role not in (User.ROLE_CLIENT, User.ROLE_PROFESSIONAL):
            role = User.ROLE_CLIENT

        username = email.split("@")[0]
        base_username = username
        counter = 1
        while User.objects.filter(username=username).exists():
            username = f"{base_username}_{counter}"
            counter += 1

        user = User.objects.create(
            username=username,
            email=email,
            role=role,
            first_name=metadata.get("first_name") or "",
            last_name=metadata.get("last_name") or "",
        )
        user.set_unusable_password()
        user.save(update_fields=["password"])
        logger.info(f"Created new {role} user from Supabase: {email}")
        return user
