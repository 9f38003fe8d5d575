from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from accounts.permissions import IsRider, IsDriver
from services import ride_management
from services.ride_management import (
    Caller,
    RideError,
    RideNotFoundError,
    RideConflictError,
    RideForbiddenError,
    RouteLookupError,
    UpstreamError,
)
from .serializers import (
    RideSerializer,
    RideCreateSerializer,
    RideStatusChangeSerializer,
)


# Checked in order: RouteLookupError is also an UpstreamError
ERROR_STATUS_CODES = (
    (RideNotFoundError, status.HTTP_404_NOT_FOUND),
    (RideForbiddenError, status.HTTP_403_FORBIDDEN),
    (RideConflictError, status.HTTP_409_CONFLICT),
    (RouteLookupError, status.HTTP_502_BAD_GATEWAY),
    (UpstreamError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def ride_error_response(exc: RideError) -> Response:
    """Translate a services-layer error into an API response."""
    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for exc_type, exc_code in ERROR_STATUS_CODES:
        if isinstance(exc, exc_type):
            code = exc_code
            break

    body = {'error': str(exc)}
    if isinstance(exc, RideConflictError) and exc.current_status:
        body['status'] = exc.current_status
    return Response(body, status=code)


def change_response(ride) -> Response:
    return Response({'id': ride.id, 'status': ride.status})


# ==================== Rider Ride APIs ====================

class RideCreateView(APIView):
    """
    POST: Rider creates a ride. The route is fetched once and stored.
    """
    permission_classes = [IsAuthenticated, IsRider]

    def post(self, request):
        serializer = RideCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = ride_management.create_ride(
                Caller.from_user(request.user),
                serializer.origin,
                serializer.destination,
            )
        except RideError as exc:
            return ride_error_response(exc)

        ride = result.ride
        return Response({
            'id': ride.id,
            'status': ride.status,
            'route': ride.route,
            'message': result.message,
        }, status=status.HTTP_201_CREATED)


class RideDetailView(APIView):
    """
    GET: Full ride record, for its rider or its assigned driver.
    """
    permission_classes = [IsAuthenticated, IsRider | IsDriver]

    def get(self, request, ride_id: int):
        try:
            ride = ride_management.get_ride(Caller.from_user(request.user), ride_id)
        except RideError as exc:
            return ride_error_response(exc)

        return Response(RideSerializer(ride).data)


class RideStatusView(APIView):
    """
    GET: Ride status (POLLING ENDPOINT)
    """
    permission_classes = [IsAuthenticated, IsRider | IsDriver]

    def get(self, request, ride_id: int):
        try:
            ride_status = ride_management.get_ride_status(Caller.from_user(request.user), ride_id)
        except RideError as exc:
            return ride_error_response(exc)

        return Response({'ride_id': ride_id, 'status': ride_status})


class RideHistoryView(APIView):
    """
    GET: Audit trail of every status the ride went through.
    """
    permission_classes = [IsAuthenticated, IsRider | IsDriver]

    def get(self, request, ride_id: int):
        try:
            history = ride_management.get_ride_history(Caller.from_user(request.user), ride_id)
        except RideError as exc:
            return ride_error_response(exc)

        serializer = RideStatusChangeSerializer(history, many=True)
        return Response({'ride_id': ride_id, 'history': serializer.data})


class RideCancelView(APIView):
    """
    POST: Rider cancels a ride that no driver has claimed yet.
    """
    permission_classes = [IsAuthenticated, IsRider]

    def post(self, request, ride_id: int):
        try:
            result = ride_management.cancel_ride(Caller.from_user(request.user), ride_id)
        except RideError as exc:
            return ride_error_response(exc)

        return change_response(result.ride)


# ==================== Driver Ride APIs ====================

class SearchingRidesView(APIView):
    """
    GET: Every ride waiting for a driver.
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def get(self, request):
        try:
            rides = ride_management.list_searching_rides(Caller.from_user(request.user))
        except RideError as exc:
            return ride_error_response(exc)

        serializer = RideSerializer(rides, many=True)
        return Response({'count': len(rides), 'rides': serializer.data})


class RideClaimView(APIView):
    """
    POST: Driver claims a searching ride. Losing a race returns 409.
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def post(self, request, ride_id: int):
        try:
            result = ride_management.claim_ride(Caller.from_user(request.user), ride_id)
        except RideError as exc:
            return ride_error_response(exc)

        return change_response(result.ride)


class RideCompleteView(APIView):
    """
    POST: Assigned driver completes the ride.
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def post(self, request, ride_id: int):
        try:
            result = ride_management.complete_ride(Caller.from_user(request.user), ride_id)
        except RideError as exc:
            return ride_error_response(exc)

        return change_response(result.ride)
