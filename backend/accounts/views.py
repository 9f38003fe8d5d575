from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from .models import User
from .serializers import LoginSerializer, UserSerializer


def issue_tokens(user):
    """Build a refresh/access pair carrying the caller's role claim."""
    refresh = RefreshToken.for_user(user)
    refresh["role"] = user.role
    return {
        "refresh": str(refresh),
        "access": str(refresh.access_token),
    }


class LoginView(APIView):
    """
    Login with username and password to get JWT tokens

    POST Body:
    {
        "username": "john_doe",
        "password": "password123"
    }
    """
    permission_classes = (AllowAny,)
    authentication_classes = []

    def post(self, request):
        serializer = LoginSerializer(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)

        # Get the user object from the validated data
        user = serializer.validated_data

        return Response({
            "message": "Login successful",
            "user": UserSerializer(user).data,
            "tokens": issue_tokens(user),
        }, status=status.HTTP_200_OK)


def _read_refresh_token(request):
    """Return a valid RefreshToken from the body, or an error Response."""
    refresh_token = request.data.get('refresh')

    if not refresh_token:
        return None, Response(
            {'error': 'Refresh token is required'},
            status=status.HTTP_400_BAD_REQUEST
        )

    try:
        return RefreshToken(refresh_token), None
    except TokenError:
        return None, Response(
            {'error': 'Invalid refresh token'},
            status=status.HTTP_401_UNAUTHORIZED
        )


class RefreshTokenView(APIView):
    """
    Exchange a refresh token for a new token pair.
    The presented refresh token is blacklisted and cannot be reused.

    POST Body:
    {
        "refresh": "your_refresh_token"
    }
    """
    permission_classes = (AllowAny,)
    authentication_classes = []

    def post(self, request):
        refresh, error = _read_refresh_token(request)
        if error is not None:
            return error

        try:
            user = User.objects.get(id=refresh['user_id'], is_active=True)
        except (KeyError, User.DoesNotExist):
            return Response(
                {'error': 'Invalid refresh token'},
                status=status.HTTP_401_UNAUTHORIZED
            )

        refresh.blacklist()
        return Response(issue_tokens(user))


class LogoutView(APIView):
    """
    Revoke a refresh token. Access tokens already issued stay valid
    until they expire.

    POST Body:
    {
        "refresh": "your_refresh_token"
    }
    """
    permission_classes = (AllowAny,)
    authentication_classes = []

    def post(self, request):
        refresh, error = _read_refresh_token(request)
        if error is not None:
            return error

        refresh.blacklist()
        return Response({'message': 'Logged out'})

class MeView(APIView):
    """Return the identity (id + role) bound to the presented token."""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)
