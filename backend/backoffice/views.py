"""
Back-office endpoints outside the entity viewsets:
- CSV/PDF exports and reports
- Quick search
- Generic file upload
"""
import logging

from django.core.exceptions import ValidationError
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import serializers, status
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response

from authentication.permissions import IsAgentOrStaff, IsStaffRole
from services.responses import service_response
from services.search_service import SearchService
from . import reports
from .exports import PdfReport, csv_response, dated_filename, format_money, generate_csv, pdf_response
from .storage import store_upload

logger = logging.getLogger(__name__)

# ``format`` is reserved by DRF's content negotiation
format_param = openapi.Parameter(
    'output', openapi.IN_QUERY, type=openapi.TYPE_STRING, enum=['csv', 'pdf'], default='csv'
)
date_params = [
    openapi.Parameter('date_from', openapi.IN_QUERY, type=openapi.TYPE_STRING, format=openapi.FORMAT_DATE),
    openapi.Parameter('date_to', openapi.IN_QUERY, type=openapi.TYPE_STRING, format=openapi.FORMAT_DATE),
]


class ReportQuerySerializer(serializers.Serializer):
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    agent_id = serializers.IntegerField(required=False)
    partner_id = serializers.IntegerField(required=False)


class UploadSerializer(serializers.Serializer):
    entity = serializers.RegexField(r'^[A-Za-z0-9_-]+$', max_length=50)
    entityId = serializers.RegexField(r'^[A-Za-z0-9_-]+$', max_length=50, required=False, allow_blank=True)
    platformCode = serializers.RegexField(r'^[A-Za-z0-9_-]+$', max_length=50, required=False, allow_blank=True)
    type = serializers.RegexField(r'^[A-Za-z0-9_-]+$', max_length=50)
    file = serializers.FileField()

    def validate(self, attrs):
        if not attrs.get('entityId') and not attrs.get('platformCode'):
            raise serializers.ValidationError("Either entityId or platformCode is required")
        return attrs


def _export_format(request):
    return 'pdf' if request.query_params.get('output', 'csv').lower() == 'pdf' else 'csv'


def _report_params(request):
    params = ReportQuerySerializer(data=request.query_params)
    params.is_valid(raise_exception=True)
    return params.validated_data


def _render(request, title, prefix, headers, rows, summary_lines=None):
    """Return ``rows`` as a CSV or PDF attachment depending on ``?output``."""
    if _export_format(request) == 'pdf':
        report = PdfReport(title, generated_by=request.user.name)
        if summary_lines:
            report.add_lines(summary_lines)
        report.add_table(headers, rows)
        return pdf_response(report.render(), dated_filename(prefix, 'pdf'))
    return csv_response(generate_csv(headers, rows), dated_filename(prefix, 'csv'))


# ==================== EXPORTS ====================

@swagger_auto_schema(method='get', manual_parameters=[format_param], responses={200: "CSV or PDF attachment"}, tags=['Exports'])
@api_view(['GET'])
@permission_classes([IsAgentOrStaff])
def clients_export(request):
    """Agents export their own clients."""
    rows = reports.client_export_rows(request.user)
    return _render(request, 'Clients', 'clients', reports.CLIENT_EXPORT_HEADERS, rows)


@swagger_auto_schema(method='get', manual_parameters=[format_param], responses={200: "CSV or PDF attachment"}, tags=['Exports'])
@api_view(['GET'])
@permission_classes([IsStaffRole])
def agents_export(request):
    rows = reports.agent_export_rows()
    return _render(request, 'Agent Performance', 'agents', reports.AGENT_EXPORT_HEADERS, rows)


@swagger_auto_schema(method='get', manual_parameters=[format_param], responses={200: "CSV or PDF attachment"}, tags=['Exports'])
@api_view(['GET'])
@permission_classes([IsStaffRole])
def settlements_export(request):
    """
    One row per fund movement followed by a per-client summary section.
    """
    report = reports.settlement_report()
    detail_rows = [
        [
            row['client_name'], row['date'], row['flow_type'], row['from_platform'], row['to_platform'],
            format_money(row['amount']), row['currency'], row['settlement_status'], row['reviewed_by'],
            row['reviewed_at'], row['review_notes'], row['status'],
        ]
        for row in report['details']
    ]
    summary_rows = [
        [
            row['client_name'], format_money(row['total_in']), format_money(row['total_out']),
            format_money(row['net_balance']), row['pending'], row['confirmed'], row['rejected'],
        ]
        for row in report['clients']
    ]

    if _export_format(request) == 'pdf':
        pdf = PdfReport('Settlements', generated_by=request.user.name)
        pdf.add_heading('Fund Movements')
        pdf.add_table(reports.SETTLEMENT_DETAIL_HEADERS, detail_rows)
        pdf.add_heading('Client Summary')
        pdf.add_table(reports.SETTLEMENT_SUMMARY_HEADERS, summary_rows)
        return pdf_response(pdf.render(), dated_filename('settlements', 'pdf'))

    details = generate_csv(reports.SETTLEMENT_DETAIL_HEADERS, detail_rows)
    summary = generate_csv(reports.SETTLEMENT_SUMMARY_HEADERS, summary_rows)
    content = f"{details}\n\nCLIENT SUMMARY\n{summary}"
    return csv_response(content, dated_filename('settlements', 'csv'))


# ==================== REPORTS ====================

@swagger_auto_schema(
    method='get',
    manual_parameters=[format_param, *date_params, openapi.Parameter('agent_id', openapi.IN_QUERY, type=openapi.TYPE_INTEGER)],
    responses={200: "CSV or PDF attachment"},
    tags=['Reports'],
)
@api_view(['GET'])
@permission_classes([IsStaffRole])
def agent_commission_report(request):
    params = _report_params(request)
    report = reports.agent_commission_report(params.get('date_from'), params.get('date_to'), params.get('agent_id'))
    totals = report['totals']
    summary = [
        f"Total earned: ${format_money(totals['total_earned'])}",
        f"Direct: ${format_money(totals['total_direct'])}",
        f"Override: ${format_money(totals['total_override'])}",
        f"Pending: ${format_money(totals['total_pending'])}",
        f"Allocations: {totals['count']}",
    ]
    return _render(
        request, 'Agent Commission Report', 'agent-commission-report',
        reports.AGENT_COMMISSION_HEADERS, reports.agent_commission_rows(report), summary,
    )


@swagger_auto_schema(method='get', manual_parameters=[format_param, *date_params], responses={200: "CSV or PDF attachment"}, tags=['Reports'])
@api_view(['GET'])
@permission_classes([IsStaffRole])
def client_ltv_report(request):
    params = _report_params(request)
    report = reports.client_ltv_report(params.get('date_from'), params.get('date_to'))
    totals = report['totals']
    summary = [
        f"Clients: {totals['client_count']}",
        f"Total LTV: ${format_money(totals['total_ltv'])}",
        f"Average LTV: ${format_money(totals['avg_ltv'])}",
        f"Commission cost: ${format_money(totals['total_commission_cost'])}",
    ]
    return _render(
        request, 'Client Lifetime Value Report', 'client-ltv-report',
        reports.CLIENT_LTV_HEADERS, reports.client_ltv_rows(report), summary,
    )


@swagger_auto_schema(
    method='get',
    manual_parameters=[format_param, *date_params, openapi.Parameter('partner_id', openapi.IN_QUERY, type=openapi.TYPE_INTEGER)],
    responses={200: "CSV or PDF attachment"},
    tags=['Reports'],
)
@api_view(['GET'])
@permission_classes([IsStaffRole])
def partner_profit_report(request):
    params = _report_params(request)
    report = reports.partner_profit_report(params.get('date_from'), params.get('date_to'), params.get('partner_id'))
    totals = report['totals']
    summary = [
        f"Gross: ${format_money(totals['gross'])}",
        f"Fees: ${format_money(totals['fees'])}",
        f"Partner share: ${format_money(totals['partner_share'])}",
        f"Company share: ${format_money(totals['company_share'])}",
    ]
    return _render(
        request, 'Partner Profit Report', 'partner-profit-report',
        reports.PARTNER_PROFIT_HEADERS, reports.partner_profit_rows(report), summary,
    )


# ==================== OVERVIEW ====================

@swagger_auto_schema(method='get', responses={200: "Back-office queue counts"}, tags=['Overview'])
@api_view(['GET'])
@permission_classes([IsStaffRole])
def overview(request):
    return Response({
        'success': True,
        'data': {
            'stats': reports.overview_stats(),
            'pending_actions': reports.pending_action_counts(),
        },
    })


@swagger_auto_schema(method='get', responses={200: "Clients in EXECUTION_DELAYED"}, tags=['Overview'])
@api_view(['GET'])
@permission_classes([IsStaffRole])
def delayed_clients(request):
    return Response({'success': True, 'data': reports.delayed_clients()})


# ==================== SEARCH ====================

@swagger_auto_schema(
    method='get',
    manual_parameters=[openapi.Parameter('q', openapi.IN_QUERY, type=openapi.TYPE_STRING, required=True)],
    responses={200: "Search results"},
    tags=['Search'],
)
@api_view(['GET'])
@permission_classes([IsAgentOrStaff])
def search(request):
    return service_response(SearchService(request.user).search(request.query_params.get('q', '')))


# ==================== UPLOAD ====================

@swagger_auto_schema(method='post', request_body=UploadSerializer, responses={201: "Stored file URL"}, tags=['Uploads'])
@api_view(['POST'])
@permission_classes([IsAgentOrStaff])
@parser_classes([MultiPartParser, FormParser])
def upload(request):
    serializer = UploadSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    owner = data.get('entityId') or data.get('platformCode')
    directory = f"uploads/{data['entity']}/{owner}/{data['type']}"
    try:
        url = store_upload(data['file'], directory)
    except ValidationError as e:
        return Response({'success': False, 'error': e.messages[0], 'errors': e.messages}, status=status.HTTP_400_BAD_REQUEST)

    logger.info(f"User {request.user.email} uploaded {url}")
    return Response({'success': True, 'data': {'url': url}}, status=status.HTTP_201_CREATED)
