"""Session authentication endpoints for the API clients."""

from django import forms
from django.contrib.auth import authenticate, login, logout
from django.http import JsonResponse
from django.middleware.csrf import get_token
from django.views.decorators.csrf import ensure_csrf_cookie

from core.exceptions import NotAuthenticated
from core.http import api_view, request_data, validate
from core.logging_utils import get_accounts_logger
from core.middleware import get_client_ip

# Get centralized logger
logger = get_accounts_logger()


class LoginForm(forms.Form):
    email = forms.EmailField()
    password = forms.CharField(strip=False)


@api_view(['POST'], login_required=False)
def login_view(request):
    data = validate(LoginForm, request_data(request))
    user = authenticate(request, email=data['email'], password=data['password'])
    if user is None:
        logger.security_event("Failed login attempt", extra_data={
            "email": data['email'], "ip": get_client_ip(request),
        })
        raise NotAuthenticated('Invalid email or password')

    login(request, user)
    logger.user_activity("login", user)
    return JsonResponse(user.to_dict())


@api_view(['POST'])
def logout_view(request):
    logger.info("User logged out", user=request.user)
    logout(request)
    return JsonResponse({'message': 'Logged out'})


@api_view(['GET'])
def me(request):
    return JsonResponse(request.user.to_dict())


@ensure_csrf_cookie
@api_view(['GET'], login_required=False)
def csrf(request):
    """Hand the CSRF token to clients before their first unsafe request."""
    return JsonResponse({'csrf_token': get_token(request)})
