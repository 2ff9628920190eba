from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .cache import public_settings


class PublicSettingsView(APIView):
    """GET /api/settings/  cached public site settings."""
    permission_classes = [AllowAny]

    def get(self, request):
        return Response({"settings": public_settings()})
