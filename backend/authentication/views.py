import logging

from django.contrib.auth import authenticate
from django.http import JsonResponse
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import AllowAny, IsAuthenticated

from authentication.tokens import ExpiringTokenAuthentication, issue_token

activity_log = logging.getLogger("activity")


def _user_payload(user):
    return {"id": user.id, "email": user.email, "role": user.role}


@api_view(["GET"])
@permission_classes([AllowAny])
def auth_root_view(request):
    return JsonResponse({"message": "Auth endpoint works!"})


@api_view(["POST"])
@authentication_classes([])
@permission_classes([AllowAny])
def login_view(request):
    email = (request.data.get("email") or "").strip().lower()
    password = request.data.get("password")

    if not email or not password:
        return JsonResponse(
            {"error": "Email y contraseña son requeridos"},
            status=status.HTTP_400_BAD_REQUEST,
        )

    user = authenticate(request, email=email, password=password)
    if user is None or not user.is_active:
        activity_log.info(f'login_failed email="{email}"')
        return JsonResponse(
            {"error": "Invalid credentials"},
            status=status.HTTP_401_UNAUTHORIZED,
        )

    token = issue_token(user)
    activity_log.info(f'login user="{user.id}" email="{user.email}" role="{user.role}"')
    return JsonResponse({"success": True, "token": token.key, "user": _user_payload(user)})


@api_view(["GET"])
@authentication_classes([])
@permission_classes([AllowAny])
def verify_view(request):
    auth = ExpiringTokenAuthentication()
    try:
        result = auth.authenticate(request)
    except AuthenticationFailed as exc:
        return JsonResponse({"valid": False, "error": str(exc.detail)}, status=status.HTTP_401_UNAUTHORIZED)

    if result is None:
        return JsonResponse({"valid": False, "error": "Token no proporcionado"}, status=status.HTTP_401_UNAUTHORIZED)

    user, _token = result
    return JsonResponse(
        {"valid": True, "user": {"user_id": user.id, "email": user.email, "role": user.role}}
    )


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def logout_view(request):
    if request.auth is not None:
        request.auth.delete()
    activity_log.info(f'logout user="{request.user.id}" email="{request.user.email}"')
    return JsonResponse({"message": "Logout successful"})
