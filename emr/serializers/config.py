from decimal import Decimal

from rest_framework import serializers


class ClinicSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    code = serializers.CharField(max_length=20)
    address = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default='')
    is_active = serializers.BooleanField(required=False, default=True)


class ServiceSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)
    name = serializers.CharField(max_length=255)
    type = serializers.CharField(max_length=50, required=False, default='service')
    description = serializers.CharField(required=False, allow_blank=True, default='')
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'))
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=4, min_value=Decimal('0'),
                                        max_value=Decimal('1'), required=False, default=Decimal('0'))
    is_active = serializers.BooleanField(required=False, default=True)
