"""API exceptions not covered by rest_framework.exceptions."""

from rest_framework import status
from rest_framework.exceptions import APIException


class InvalidTransition(APIException):
    """Requested lesson plan transition is not valid from the plan's current status."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Transition not allowed from the current status."
    default_code = "invalid_transition"
