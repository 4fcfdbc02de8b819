# api/serializers.py
from rest_framework import serializers

from operations.models import (
    Client,
    ComplianceReport,
    CustomPlanDetails,
    Delivery,
    DispenserReport,
    Invoice,
    ManualCharge,
    Notification,
    Plan,
    RefillRequest,
    SanitationVisit,
    TopUpRequest,
    WaterStation,
)


class PlanSerializer(serializers.ModelSerializer):
    class Meta:
        model = Plan
        fields = '__all__'


class CustomPlanDetailsSerializer(serializers.ModelSerializer):
    monthly_allocation = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = CustomPlanDetails
        exclude = ('client',)
        read_only_fields = ('rollover_period', 'opening_rollover')


class ClientSerializer(serializers.ModelSerializer):
    plan_name = serializers.CharField(source='plan.name', read_only=True, default=None)
    pending_plan_name = serializers.CharField(source='pending_plan.name', read_only=True, default=None)
    custom_plan_details = CustomPlanDetailsSerializer(read_only=True)

    class Meta:
        model = Client
        fields = '__all__'
        read_only_fields = (
            'uid',
            'total_consumption_liters',
            'top_up_balance_credits',
            'last_billed_date',
            'current_contract',
            'contract_status',
            'contract_uploaded_date',
            'photo',
            'created_at',
            'updated_at',
        )

    def validate(self, attrs):
        account_type = attrs.get('account_type', getattr(self.instance, 'account_type', Client.ACCOUNT_SINGLE))
        parent = attrs.get('parent', getattr(self.instance, 'parent', None))
        if account_type == Client.ACCOUNT_BRANCH and parent is None:
            raise serializers.ValidationError({'parent': 'Branch accounts must belong to a parent account.'})
        if parent is not None and self.instance is not None and parent.pk == self.instance.pk:
            raise serializers.ValidationError({'parent': 'An account cannot be its own parent.'})
        return attrs


class DeliverySerializer(serializers.ModelSerializer):
    liters_delivered = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    client_name = serializers.CharField(source='client.business_name', read_only=True)

    class Meta:
        model = Delivery
        fields = '__all__'
        read_only_fields = ('reference', 'proof_of_delivery', 'created_at')


class ManualChargeSerializer(serializers.ModelSerializer):
    class Meta:
        model = ManualCharge
        fields = ('id', 'client', 'description', 'amount', 'date_added', 'invoice')
        read_only_fields = ('client', 'date_added', 'invoice')


class InvoiceSerializer(serializers.ModelSerializer):
    manual_charges = ManualChargeSerializer(many=True, read_only=True)

    class Meta:
        model = Invoice
        fields = '__all__'
        read_only_fields = ('proof_of_payment', 'is_first_invoice', 'created_at', 'updated_at')


class InvoiceReviewSerializer(serializers.Serializer):
    approve = serializers.BooleanField()
    reason = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if not attrs['approve'] and not attrs.get('reason', '').strip():
            raise serializers.ValidationError({'reason': 'A reason is required to reject a payment.'})
        return attrs


class ChangePlanSerializer(serializers.Serializer):
    plan = serializers.PrimaryKeyRelatedField(queryset=Plan.objects.all())
    is_prepaid = serializers.BooleanField(required=False, allow_null=True, default=None)
    liters_per_month = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    bonus_liters = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)


class SchedulePlanChangeSerializer(serializers.Serializer):
    plan = serializers.PrimaryKeyRelatedField(queryset=Plan.objects.filter(is_active=True))
    effective_date = serializers.DateField(required=False)


class DispenserReportSerializer(serializers.ModelSerializer):
    class Meta:
        model = DispenserReport
        fields = ('id', 'dispenser_id', 'dispenser_name', 'dispenser_code', 'checklist')


class SanitationVisitSerializer(serializers.ModelSerializer):
    dispenser_reports = DispenserReportSerializer(many=True, read_only=True)
    pass_rate = serializers.IntegerField(read_only=True)

    class Meta:
        model = SanitationVisit
        fields = '__all__'
        read_only_fields = ('share_token', 'report_file')


class WaterStationSerializer(serializers.ModelSerializer):
    class Meta:
        model = WaterStation
        fields = '__all__'
        read_only_fields = ('partnership_agreement',)


class ComplianceReportSerializer(serializers.ModelSerializer):
    station_name = serializers.CharField(source='station.name', read_only=True)

    class Meta:
        model = ComplianceReport
        fields = '__all__'
        read_only_fields = ('report_file',)


class TopUpRequestSerializer(serializers.ModelSerializer):
    class Meta:
        model = TopUpRequest
        fields = '__all__'
        read_only_fields = ('status', 'rejection_reason', 'requested_at', 'proof_of_payment')
        extra_kwargs = {'client': {'required': False}}


class TopUpReviewSerializer(serializers.Serializer):
    approve = serializers.BooleanField()
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class RefillRequestSerializer(serializers.ModelSerializer):
    class Meta:
        model = RefillRequest
        fields = '__all__'
        read_only_fields = ('requested_at', 'status_history')
        extra_kwargs = {'client': {'required': False}}


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ('id', 'type', 'title', 'description', 'date', 'is_read', 'data')
        read_only_fields = ('type', 'title', 'description', 'date', 'data')


class UploadSerializer(serializers.Serializer):
    path = serializers.CharField(max_length=500)
    file = serializers.FileField()
    payment_id = serializers.CharField(required=False, allow_blank=True)
    name = serializers.CharField(required=False, allow_blank=True)
    report_type = serializers.CharField(required=False, allow_blank=True)
