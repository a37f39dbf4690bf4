from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common.permissions import ROLE_CAPABILITIES, resolve_role


class MeView(APIView):
    def get(self, request):
        role = resolve_role(request.user)
        return Response(
            {
                "id": request.user.id,
                "username": request.user.username,
                "role": role,
                "capabilities": sorted(ROLE_CAPABILITIES.get(role, set())),
            }
        )
