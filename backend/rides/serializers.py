from rest_framework import serializers

from .models import Ride, RideStatusChange


class RideSerializer(serializers.ModelSerializer):
    """Full ride record"""
    rider_id = serializers.IntegerField(read_only=True)
    driver_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = Ride
        fields = ['id', 'rider_id', 'driver_id', 'status',
                  'origin_latitude', 'origin_longitude',
                  'destination_latitude', 'destination_longitude',
                  'route', 'created_at', 'updated_at']
        read_only_fields = fields


class RideCreateSerializer(serializers.Serializer):
    """
    Validates the origin/destination sent by a rider.

    Expected body:
    {
        "origin_latitude": <float>,
        "origin_longitude": <float>,
        "destination_latitude": <float>,
        "destination_longitude": <float>
    }
    """
    origin_latitude = serializers.DecimalField(
        max_digits=9, decimal_places=6, min_value=-90, max_value=90
    )
    origin_longitude = serializers.DecimalField(
        max_digits=9, decimal_places=6, min_value=-180, max_value=180
    )
    destination_latitude = serializers.DecimalField(
        max_digits=9, decimal_places=6, min_value=-90, max_value=90
    )
    destination_longitude = serializers.DecimalField(
        max_digits=9, decimal_places=6, min_value=-180, max_value=180
    )

    @property
    def origin(self):
        data = self.validated_data
        return (data['origin_latitude'], data['origin_longitude'])

    @property
    def destination(self):
        data = self.validated_data
        return (data['destination_latitude'], data['destination_longitude'])


class RideStatusChangeSerializer(serializers.ModelSerializer):
    actor_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = RideStatusChange
        fields = ['from_status', 'to_status', 'actor_id', 'changed_at']
        read_only_fields = fields
