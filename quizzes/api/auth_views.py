"""
Token login. Clients send the returned key as `Authorization: Token <key>`.
"""
from django.contrib.auth import authenticate
from rest_framework import serializers
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from rest_framework.authtoken.models import Token
from drf_spectacular.utils import extend_schema, OpenApiExample, OpenApiResponse

from quizzes.exceptions import Validation
from quizzes.models import AuditLog
from quizzes.throttling import AuthRateThrottle
from .results import ActionResultMixin


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(style={'input_type': 'password'})


@extend_schema(
    tags=['Authentication'],
    summary="Login",
    description="""
**Exchange username and password for an API token.**

### Demo Accounts:
| Role | Username | Password |
|------|----------|----------|
| Student | student | student123 |
| Instructor | instructor | instructor123 |
| Admin | admin | admin123 |
""",
    request=LoginSerializer,
    responses={
        200: OpenApiResponse(
            description="Login successful",
            examples=[
                OpenApiExample(
                    'Success',
                    value={
                        "success": True,
                        "data": {
                            "token": "9944b09199c62bcf9418ad846dd0e4bbdfc6ee4b",
                            "user": {"id": 1, "username": "student", "role": "student"}
                        }
                    }
                )
            ]
        ),
        400: OpenApiResponse(description="Invalid credentials"),
    }
)
class TokenLoginView(ActionResultMixin, APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [AuthRateThrottle]

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        username = serializer.validated_data['username']
        user = authenticate(username=username, password=serializer.validated_data['password'])
        if not user:
            AuditLog.log(
                event_type=AuditLog.EventType.LOGIN_FAILED,
                description=f"Failed login attempt: {username}",
            )
            raise Validation("Invalid username or password.")

        token, _ = Token.objects.get_or_create(user=user)
        AuditLog.log(
            event_type=AuditLog.EventType.LOGIN,
            description=f"User logged in: {user.username}",
            user=user
        )
        return Response({
            "token": token.key,
            "user": {
                "id": user.id,
                "username": user.username,
                "role": user.profile.role if hasattr(user, 'profile') else 'student'
            }
        })
