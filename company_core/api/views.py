# api/views.py
import logging
from datetime import date

from dateutil.relativedelta import relativedelta
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Q
from django.http import HttpResponse
from django.utils import timezone
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action, api_view, parser_classes, permission_classes
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import SAFE_METHODS, BasePermission, IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from operations import billing
from operations.billing import (
    add_manual_charge,
    billing_cycle_for_month,
    cancel_plan_change,
    generate_cycle_statement,
    review_invoice_payment,
    review_top_up,
)
from operations.exceptions import StatementGenerationError
from operations.models import (
    Client,
    ComplianceReport,
    Delivery,
    Invoice,
    Notification,
    RefillRequest,
    SanitationVisit,
    TopUpRequest,
    WaterStation,
)
from operations.statements import generate_delivery_history_pdf, generate_invoice_pdf, statement_filename
from operations.uploads import handle_uploaded_file
from .serializers import (
    ChangePlanSerializer,
    ClientSerializer,
    ComplianceReportSerializer,
    DeliverySerializer,
    InvoiceReviewSerializer,
    InvoiceSerializer,
    ManualChargeSerializer,
    NotificationSerializer,
    RefillRequestSerializer,
    SanitationVisitSerializer,
    SchedulePlanChangeSerializer,
    TopUpRequestSerializer,
    TopUpReviewSerializer,
    UploadSerializer,
    WaterStationSerializer,
)

logger = logging.getLogger(__name__)


def _client_for(user):
    """The client account linked to a portal user, or None."""
    try:
        return user.client_account
    except Client.DoesNotExist:
        return None


def _require_client(request):
    client = _client_for(request.user)
    if client is None:
        raise PermissionDenied('No client account is linked to this user.')
    return client


def _raise_as_drf(exc: DjangoValidationError):
    raise ValidationError(exc.message_dict if hasattr(exc, 'error_dict') else exc.messages)


def _pdf_response(pdf, filename):
    response = HttpResponse(pdf, content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


class IsStaffOrReadOnly(BasePermission):
    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return bool(request.user and request.user.is_staff)


class ClientScopedViewSet(viewsets.ModelViewSet):
    """Staff see every record; portal users only see their own account's."""
    permission_classes = [IsAuthenticated, IsStaffOrReadOnly]
    client_field = 'client'

    def get_base_queryset(self):
        return self.queryset.all()

    def get_queryset(self):
        queryset = self.get_base_queryset()
        if self.request.user.is_staff:
            return queryset
        client = _client_for(self.request.user)
        if client is None:
            return queryset.none()
        return queryset.filter(**{self.client_field: client})


class ClientViewSet(ClientScopedViewSet):
    queryset = Client.objects.select_related('plan', 'pending_plan', 'custom_plan_details')
    serializer_class = ClientSerializer

    def get_queryset(self):
        queryset = self.get_base_queryset()
        if self.request.user.is_staff:
            return queryset
        client = _client_for(self.request.user)
        if client is None:
            return queryset.none()
        # Parent accounts also see their branches.
        return queryset.filter(Q(pk=client.pk) | Q(parent=client))

    @action(detail=True, methods=['get', 'post'], url_path='manual-charges', permission_classes=[IsAdminUser])
    def manual_charges(self, request, pk=None):
        client = self.get_object()
        if request.method == 'GET':
            charges = client.manual_charges.all()
            if request.query_params.get('pending') in ('1', 'true'):
                charges = charges.filter(invoice__isnull=True)
            return Response(ManualChargeSerializer(charges, many=True).data)

        serializer = ManualChargeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            charge = add_manual_charge(
                client,
                serializer.validated_data['description'],
                serializer.validated_data['amount'],
            )
        except DjangoValidationError as exc:
            _raise_as_drf(exc)
        return Response(ManualChargeSerializer(charge).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='change-plan', permission_classes=[IsAdminUser])
    def change_plan(self, request, pk=None):
        client = self.get_object()
        serializer = ChangePlanSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            billing.change_plan(
                client,
                data['plan'],
                is_prepaid=data.get('is_prepaid'),
                liters_per_month=data.get('liters_per_month'),
                bonus_liters=data.get('bonus_liters'),
            )
        except DjangoValidationError as exc:
            _raise_as_drf(exc)
        client.refresh_from_db()
        return Response(ClientSerializer(client).data)

    @action(
        detail=True,
        methods=['post', 'delete'],
        url_path='schedule-plan-change',
        permission_classes=[IsAuthenticated],
    )
    def schedule_plan_change(self, request, pk=None):
        client = self.get_object()
        if not request.user.is_staff and client.pk != getattr(_client_for(request.user), 'pk', None):
            raise PermissionDenied('You can only change your own plan.')

        if request.method == 'DELETE':
            cancel_plan_change(client)
            return Response(ClientSerializer(client).data)

        serializer = SchedulePlanChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            billing.schedule_plan_change(
                client,
                serializer.validated_data['plan'],
                serializer.validated_data.get('effective_date'),
            )
        except DjangoValidationError as exc:
            _raise_as_drf(exc)
        return Response(ClientSerializer(client).data)

    @action(detail=True, methods=['get'])
    def statement(self, request, pk=None):
        """SOA PDF for ``?period=YYYY-MM`` (defaults to last month)."""
        client = self.get_object()
        period = request.query_params.get('period')
        if period:
            try:
                month = date.fromisoformat(f'{period}-01')
            except ValueError:
                raise ValidationError({'period': 'Use the YYYY-MM format.'})
        else:
            month = timezone.localdate() - relativedelta(months=1)

        cycle = billing_cycle_for_month(month)
        try:
            pdf = generate_cycle_statement(client, cycle)
        except StatementGenerationError as exc:
            logger.error("Statement for client %s failed: %s", client.pk, exc)
            return Response({'error': str(exc)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
        return _pdf_response(pdf, statement_filename(client, cycle.label))

    @action(detail=True, methods=['get'], url_path='delivery-history')
    def delivery_history(self, request, pk=None):
        client = self.get_object()
        deliveries = client.deliveries.order_by('-date')
        start = request.query_params.get('start')
        end = request.query_params.get('end')
        try:
            start = date.fromisoformat(start) if start else None
            end = date.fromisoformat(end) if end else None
        except ValueError:
            raise ValidationError({'detail': 'Dates must use the YYYY-MM-DD format.'})
        if start:
            deliveries = deliveries.filter(date__date__gte=start)
        if end:
            deliveries = deliveries.filter(date__date__lte=end)

        try:
            pdf = generate_delivery_history_pdf(client, list(deliveries), start, end)
        except StatementGenerationError as exc:
            return Response({'error': str(exc)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
        filename = f"Delivery_History_{client.client_id or client.short_key}.pdf"
        return _pdf_response(pdf, filename)


class DeliveryViewSet(ClientScopedViewSet):
    queryset = Delivery.objects.select_related('client')
    serializer_class = DeliverySerializer

    def get_queryset(self):
        queryset = self.get_base_queryset()
        if self.request.user.is_staff:
            return queryset
        client = _client_for(self.request.user)
        if client is None:
            return queryset.none()
        return queryset.filter(Q(client=client) | Q(client__parent=client))


class InvoiceViewSet(ClientScopedViewSet):
    queryset = Invoice.objects.select_related('client').prefetch_related('manual_charges')
    serializer_class = InvoiceSerializer

    @action(detail=True, methods=['post'], permission_classes=[IsAdminUser])
    def review(self, request, pk=None):
        invoice = self.get_object()
        serializer = InvoiceReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            review_invoice_payment(
                invoice,
                approve=serializer.validated_data['approve'],
                reason=serializer.validated_data.get('reason', ''),
            )
        except DjangoValidationError as exc:
            _raise_as_drf(exc)
        return Response(InvoiceSerializer(invoice).data)

    @action(detail=True, methods=['get'])
    def pdf(self, request, pk=None):
        invoice = self.get_object()
        try:
            content = generate_invoice_pdf(invoice)
        except StatementGenerationError as exc:
            return Response({'error': str(exc)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
        return _pdf_response(content, f"Invoice_{invoice.invoice_number}.pdf")


class SanitationVisitViewSet(ClientScopedViewSet):
    queryset = SanitationVisit.objects.select_related('client').prefetch_related('dispenser_reports')
    serializer_class = SanitationVisitSerializer


class WaterStationViewSet(viewsets.ModelViewSet):
    queryset = WaterStation.objects.all()
    serializer_class = WaterStationSerializer
    permission_classes = [IsAuthenticated, IsStaffOrReadOnly]


class ComplianceReportViewSet(ClientScopedViewSet):
    queryset = ComplianceReport.objects.select_related('station')
    serializer_class = ComplianceReportSerializer
    client_field = 'station__clients'

    def get_queryset(self):
        queryset = super().get_queryset()
        station = self.request.query_params.get('station')
        if station:
            queryset = queryset.filter(station_id=station)
        return queryset


class TopUpRequestViewSet(ClientScopedViewSet):
    queryset = TopUpRequest.objects.select_related('client')
    serializer_class = TopUpRequestSerializer
    permission_classes = [IsAuthenticated]
    http_method_names = ['get', 'post', 'head', 'options']

    def perform_create(self, serializer):
        if self.request.user.is_staff:
            if serializer.validated_data.get('client') is None:
                raise ValidationError({'client': 'This field is required.'})
            serializer.save()
            return
        serializer.save(client=_require_client(self.request))

    @action(detail=True, methods=['post'], permission_classes=[IsAdminUser])
    def review(self, request, pk=None):
        top_up = self.get_object()
        serializer = TopUpReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            review_top_up(
                top_up,
                approve=serializer.validated_data['approve'],
                reason=serializer.validated_data.get('reason', ''),
            )
        except DjangoValidationError as exc:
            _raise_as_drf(exc)
        top_up.refresh_from_db()
        return Response(TopUpRequestSerializer(top_up).data)


class RefillRequestViewSet(ClientScopedViewSet):
    queryset = RefillRequest.objects.select_related('client')
    serializer_class = RefillRequestSerializer
    permission_classes = [IsAuthenticated]

    def perform_create(self, serializer):
        if self.request.user.is_staff:
            if serializer.validated_data.get('client') is None:
                raise ValidationError({'client': 'This field is required.'})
            serializer.save()
            return
        serializer.save(client=_require_client(self.request), status=RefillRequest.STATUS_REQUESTED)

    def perform_update(self, serializer):
        if not self.request.user.is_staff:
            raise PermissionDenied('Only staff can update refill requests.')
        serializer.save()

    def perform_destroy(self, instance):
        if not self.request.user.is_staff:
            raise PermissionDenied('Only staff can delete refill requests.')
        instance.delete()


class NotificationViewSet(mixins.ListModelMixin,
                          mixins.RetrieveModelMixin,
                          mixins.UpdateModelMixin,
                          viewsets.GenericViewSet):
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        queryset = Notification.objects.filter(recipient=self.request.user)
        if self.request.query_params.get('unread') in ('1', 'true'):
            queryset = queryset.filter(is_read=False)
        return queryset

    @action(detail=False, methods=['post'], url_path='mark-all-read')
    def mark_all_read(self, request):
        updated = self.get_queryset().filter(is_read=False).update(is_read=True)
        return Response({'updated': updated})


def _upload_allowed(user, path):
    if user.is_staff:
        return True
    client = _client_for(user)
    if client is None:
        return False
    parts = path.strip().lstrip('/').split('/')
    if len(parts) < 2 or parts[0] not in ('users', 'userContracts'):
        return False
    return parts[1] in {str(client.uid), client.client_id} - {''}


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def upload_file(request):
    """Store an uploaded file against the record its path points to.

    Form fields: ``path`` (e.g. ``users/<uid>/payments/receipt.jpg``), ``file``
    and, for payments, ``payment_id``.
    """
    serializer = UploadSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    path = data['path']
    if not _upload_allowed(request.user, path):
        raise PermissionDenied('You cannot upload to this location.')

    metadata = {key: data[key] for key in ('payment_id', 'name', 'report_type') if data.get(key)}
    obj = handle_uploaded_file(path, data['file'], metadata)
    if obj is None:
        return Response({'error': 'upload_not_matched', 'path': path}, status=status.HTTP_400_BAD_REQUEST)
    return Response(
        {'path': path, 'model': obj._meta.model_name, 'id': obj.pk},
        status=status.HTTP_201_CREATED,
    )


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me(request):
    client = _require_client(request)
    return Response(ClientSerializer(client).data)