from rest_framework.permissions import BasePermission
from .utils import has_role


class IsBusinessOwner(BasePermission):
    message = 'Only the business owner can perform this action.'

    def has_permission(self, request, view):
        return has_role(request.user, ('BUSINESS_OWNER', 'ADMIN'))


class IsStockKeeperOrOwner(BasePermission):
    message = 'Only stock keepers or the business owner can perform this action.'

    def has_permission(self, request, view):
        return has_role(request.user, ('STOCK_KEEPER', 'BUSINESS_OWNER', 'ADMIN'))


class IsAdminRole(BasePermission):
    message = 'Only administrators can perform this action.'

    def has_permission(self, request, view):
        return has_role(request.user, ('ADMIN',))
