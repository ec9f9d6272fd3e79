from rest_framework.permissions import BasePermission


class IsAdminRole(BasePermission):
    message = "No tienes permisos para eliminar reportes"

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return request.user.is_admin_role
