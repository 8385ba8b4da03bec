from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from .serializers import RegisterSerializer, LoginSerializer, UserSerializer


def issue_tokens(user):
    refresh = RefreshToken.for_user(user)
    return {
        "refresh": str(refresh),
        "access": str(refresh.access_token),
    }


def _auth_response(user, message, http_status=status.HTTP_200_OK):
    return Response({
        "message": message,
        "user": UserSerializer(user).data,
        "tokens": issue_tokens(user),
    }, status=http_status)


class RegisterView(APIView):
    """
    Sign up as a customer or a service provider.

    Providers must list the services they offer; their profile starts
    unverified and is not matched to jobs until an admin verifies it.

        {"username": "...", "password": "...", "role": "provider",
         "phone_number": "...", "full_name": "...", "services": ["AC Repair"]}
    """
    permission_classes = (AllowAny,)
    authentication_classes = []

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        user = serializer.save()
        return _auth_response(user, "User registered successfully", status.HTTP_201_CREATED)


class LoginView(APIView):
    permission_classes = (AllowAny,)
    authentication_classes = []

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return _auth_response(serializer.validated_data, "Login successful")


class RefreshTokenView(APIView):
    """Exchange a refresh token for a new access token."""
    permission_classes = (AllowAny,)
    authentication_classes = []

    def post(self, request):
        raw = request.data.get("refresh")
        if not raw:
            return Response({"error": "Refresh token is required"}, status=status.HTTP_400_BAD_REQUEST)

        try:
            access = RefreshToken(raw).access_token
        except TokenError:
            return Response({"error": "Invalid refresh token"}, status=status.HTTP_401_UNAUTHORIZED)

        return Response({"access": str(access)})


class MeView(APIView):
    """The authenticated user, whichever role."""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)
