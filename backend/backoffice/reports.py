"""
Report builders for the back office.

Each function returns plain Python data (dicts and lists) so the same numbers
feed the JSON endpoints, the CSV exports and the PDF renderings.
"""

from collections import OrderedDict
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.contrib.auth import get_user_model
from django.db.models import Count, Q, Sum
from django.utils import timezone

from clients.models import Client, ClientPlatform, EventLog, ExtensionRequest
from commission.models import BonusAllocation
from funds.models import FundMovement
from partners.models import ProfitShareDetail
from todos.models import ToDo

ZERO = Decimal('0.00')

SETTLEMENT_STATUS_LABELS = dict(FundMovement.SETTLEMENT_STATUS_CHOICES)


def _percent(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


def _avg_days_since_created(events, created_by_client: Dict[int, Any]) -> Optional[float]:
    days = []
    for event in events:
        created = created_by_client.get(event.client_id)
        if created is None:
            continue
        days.append((event.created_at - created).total_seconds() / 86400)
    if not days:
        return None
    return round(sum(days) / len(days), 1)


def _date_range(queryset, date_from=None, date_to=None, field='created_at'):
    if date_from:
        queryset = queryset.filter(**{f"{field}__gte": date_from})
    if date_to:
        queryset = queryset.filter(**{f"{field}__lte": date_to})
    return queryset


# ---------------------------------------------------------------------------
# Agent KPIs
# ---------------------------------------------------------------------------

def agent_kpis(agent) -> Dict[str, Any]:
    """
    Performance indicators for one agent.

    Rates are whole percentages; the average durations are days with one
    decimal, or None when no client has reached that stage.
    """
    clients = list(Client.objects.filter(agent=agent).values('id', 'intake_status', 'created_at'))
    total = len(clients)
    counts = {}
    for client in clients:
        counts[client['intake_status']] = counts.get(client['intake_status'], 0) + 1

    approved = counts.get(Client.STATUS_APPROVED, 0)
    rejected = counts.get(Client.STATUS_REJECTED, 0)
    in_progress = counts.get(Client.STATUS_PHONE_ISSUED, 0) + counts.get(Client.STATUS_IN_EXECUTION, 0)
    delayed = counts.get(Client.STATUS_EXECUTION_DELAYED, 0)

    with_extensions = ExtensionRequest.objects.filter(client__agent=agent).values('client_id').distinct().count()

    created_by_client = {client['id']: client['created_at'] for client in clients}
    status_events = EventLog.objects.filter(event_type=EventLog.STATUS_CHANGE, client__agent=agent)

    todo_counts = ToDo.objects.filter(assigned_to=agent).aggregate(
        pending=Count('id', filter=Q(status__in=ToDo.OPEN_STATUSES)),
        overdue=Count('id', filter=Q(status=ToDo.STATUS_OVERDUE)),
    )

    return {
        'total_clients': total,
        'approved_clients': approved,
        'rejected_clients': rejected,
        'in_progress_clients': in_progress,
        'delayed_clients': delayed,
        'success_rate': _percent(approved, approved + rejected),
        'delay_rate': _percent(delayed, in_progress + delayed),
        'extension_rate': _percent(with_extensions, total),
        'avg_days_to_initiate': _avg_days_since_created(
            status_events.filter(new_value=Client.STATUS_PHONE_ISSUED), created_by_client
        ),
        'avg_days_to_convert': _avg_days_since_created(
            status_events.filter(new_value=Client.STATUS_APPROVED), created_by_client
        ),
        'pending_todos': todo_counts['pending'],
        'overdue_todos': todo_counts['overdue'],
    }


def active_agents():
    User = get_user_model()
    return User.objects.filter(role=User.ROLE_AGENT, is_active=True).order_by('first_name', 'last_name')


AGENT_EXPORT_HEADERS = [
    'Name', 'Email', 'Total Clients', 'Approved Clients', 'Success Rate',
    'Delay Rate', 'Extension Rate', 'Avg Days to Convert',
]


def agent_export_rows() -> List[List[Any]]:
    rows = []
    for agent in active_agents():
        kpis = agent_kpis(agent)
        rows.append([
            agent.name,
            agent.email,
            kpis['total_clients'],
            kpis['approved_clients'],
            kpis['success_rate'],
            kpis['delay_rate'],
            kpis['extension_rate'],
            '' if kpis['avg_days_to_convert'] is None else kpis['avg_days_to_convert'],
        ])
    return rows


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------

CLIENT_EXPORT_HEADERS = [
    'Name', 'Email', 'Phone', 'Status', 'Agent', 'Platforms',
    'Verified Platforms', 'Created', 'Last Updated',
]


def client_export_rows(user) -> List[List[Any]]:
    """Agents export their own clients; everyone else exports all of them."""
    clients = Client.objects.select_related('agent').annotate(
        platform_count=Count('platforms', distinct=True),
        verified_count=Count('platforms', filter=Q(platforms__status='VERIFIED'), distinct=True),
    ).order_by('-created_at')
    if user.role == get_user_model().ROLE_AGENT:
        clients = clients.filter(agent=user)

    rows = []
    for client in clients:
        last_updated = client.status_changed_at or client.updated_at
        rows.append([
            client.name,
            client.email or '',
            client.phone or '',
            client.intake_status,
            client.agent.name if client.agent else '',
            client.platform_count,
            client.verified_count,
            timezone.localtime(client.created_at).date().isoformat(),
            timezone.localtime(last_updated).date().isoformat(),
        ])
    return rows


# ---------------------------------------------------------------------------
# Settlements
# ---------------------------------------------------------------------------

SETTLEMENT_DETAIL_HEADERS = [
    'Client Name', 'Date', 'Flow', 'From Platform', 'To Platform', 'Amount', 'Currency',
    'Settlement Status', 'Reviewed By', 'Reviewed At', 'Review Notes', 'Movement Status',
]
SETTLEMENT_SUMMARY_HEADERS = [
    'Client Name', 'Total In', 'Total Out', 'Net Balance',
    'Pending Count', 'Confirmed Count', 'Rejected Count',
]


def settlement_report() -> Dict[str, Any]:
    """
    One detail row per fund movement plus a per-client summary.

    Movements are attributed to their source client; money arriving at a
    client counts towards that client's "in" total.
    """
    movements = FundMovement.objects.select_related('from_client', 'to_client', 'reviewed_by').order_by(
        'from_client__last_name', 'from_client__first_name', '-created_at'
    )

    details = []
    summary = OrderedDict()

    def client_summary(client):
        if client.id not in summary:
            summary[client.id] = {
                'client_name': client.name,
                'total_in': ZERO,
                'total_out': ZERO,
                'pending': 0,
                'confirmed': 0,
                'rejected': 0,
            }
        return summary[client.id]

    for movement in movements:
        details.append({
            'client_name': movement.from_client.name,
            'date': timezone.localtime(movement.created_at).date().isoformat(),
            'flow_type': movement.get_flow_type_display(),
            'from_platform': movement.from_platform,
            'to_platform': movement.to_platform,
            'amount': movement.amount,
            'currency': movement.currency,
            'settlement_status': SETTLEMENT_STATUS_LABELS.get(movement.settlement_status, movement.settlement_status),
            'reviewed_by': movement.reviewed_by.name if movement.reviewed_by else '',
            'reviewed_at': timezone.localtime(movement.reviewed_at).isoformat() if movement.reviewed_at else '',
            'review_notes': movement.review_notes or '',
            'status': movement.status,
        })

        source = client_summary(movement.from_client)
        source['total_out'] += movement.amount
        source[{
            FundMovement.SETTLEMENT_PENDING_REVIEW: 'pending',
            FundMovement.SETTLEMENT_CONFIRMED: 'confirmed',
            FundMovement.SETTLEMENT_REJECTED: 'rejected',
        }[movement.settlement_status]] += 1
        if movement.to_client is not None:
            client_summary(movement.to_client)['total_in'] += movement.amount

    clients = sorted(summary.values(), key=lambda row: row['client_name'].lower())
    for row in clients:
        row['net_balance'] = row['total_in'] - row['total_out']
    return {'details': details, 'clients': clients}


# ---------------------------------------------------------------------------
# Agent commission
# ---------------------------------------------------------------------------

AGENT_COMMISSION_HEADERS = [
    'Agent Name', 'Tier', 'Star Level', 'Direct Total', 'Star Slice Total',
    'Backfill Total', 'Override Total', 'Total Earned', 'Pending', 'Paid',
]


def agent_commission_report(date_from=None, date_to=None, agent_id=None) -> Dict[str, Any]:
    """
    Allocation totals per agent. "Override" is anything earned from a pool
    the agent did not close.
    """
    allocations = BonusAllocation.objects.select_related('agent', 'bonus_pool')
    if agent_id:
        allocations = allocations.filter(agent_id=agent_id)
    allocations = _date_range(allocations, date_from, date_to)

    by_agent = {}
    totals = {'total_earned': ZERO, 'total_direct': ZERO, 'total_override': ZERO, 'total_pending': ZERO, 'count': 0}

    for allocation in allocations:
        row = by_agent.setdefault(allocation.agent_id, {
            'agent_id': allocation.agent_id,
            'agent_name': allocation.agent.name,
            'tier': allocation.agent.tier,
            'star_level': allocation.agent.star_level,
            'direct_total': ZERO,
            'star_slice_total': ZERO,
            'backfill_total': ZERO,
            'override_total': ZERO,
            'total_earned': ZERO,
            'pending_amount': ZERO,
            'paid_amount': ZERO,
            'pool_count': 0,
        })
        amount = allocation.amount
        is_override = allocation.bonus_pool.closer_id != allocation.agent_id

        row['total_earned'] += amount
        row[f"{allocation.type}_total"] += amount
        if is_override:
            row['override_total'] += amount
        if allocation.status == BonusAllocation.STATUS_PENDING:
            row['pending_amount'] += amount
        else:
            row['paid_amount'] += amount
        row['pool_count'] += 1

        totals['total_earned'] += amount
        totals['count'] += 1
        if allocation.type == BonusAllocation.TYPE_DIRECT:
            totals['total_direct'] += amount
        if is_override:
            totals['total_override'] += amount
        if allocation.status == BonusAllocation.STATUS_PENDING:
            totals['total_pending'] += amount

    agents = sorted(by_agent.values(), key=lambda row: row['total_earned'], reverse=True)
    return {'by_agent': agents, 'totals': totals}


def agent_commission_rows(report) -> List[List[Any]]:
    return [
        [
            row['agent_name'], row['tier'], row['star_level'], row['direct_total'],
            row['star_slice_total'], row['backfill_total'], row['override_total'],
            row['total_earned'], row['pending_amount'], row['paid_amount'],
        ]
        for row in report['by_agent']
    ]


# ---------------------------------------------------------------------------
# Client lifetime value
# ---------------------------------------------------------------------------

CLIENT_LTV_HEADERS = [
    'Client Name', 'Agent', 'Partner', 'Days Active', 'Total Deposited',
    'Total Withdrawn', 'Net Flow', 'Commission Cost', 'LTV', 'Monthly Run Rate',
]


def client_ltv_report(date_from=None, date_to=None) -> Dict[str, Any]:
    """
    Lifetime value of approved clients: money moved in minus money moved out,
    less the commission paid for closing them.
    """
    clients = _date_range(
        Client.objects.filter(intake_status=Client.STATUS_APPROVED).select_related('agent', 'partner'),
        date_from, date_to,
    ).order_by('created_at')

    now = timezone.now()
    rows = []
    for client in clients:
        deposited = sum((m.amount for m in client.fund_movements_to.all()), ZERO)
        withdrawn = sum((m.amount for m in client.fund_movements_from.all()), ZERO)
        commission = sum(
            (a.amount for a in BonusAllocation.objects.filter(bonus_pool__client=client)), ZERO
        )
        net_flow = deposited - withdrawn
        ltv = net_flow - commission
        days_active = (now - client.created_at).days
        monthly = (ltv / days_active * 30).quantize(Decimal('0.01')) if days_active > 0 else ZERO

        rows.append({
            'client_id': client.id,
            'client_name': client.name,
            'agent_name': client.agent.name if client.agent else '',
            'partner_name': client.partner.name if client.partner else '',
            'days_active': days_active,
            'total_deposited': deposited,
            'total_withdrawn': withdrawn,
            'net_flow': net_flow,
            'commission_cost': commission,
            'ltv': ltv,
            'monthly_ltv': monthly,
        })

    rows.sort(key=lambda row: row['ltv'], reverse=True)
    total_ltv = sum((row['ltv'] for row in rows), ZERO)
    return {
        'clients': rows,
        'totals': {
            'total_ltv': total_ltv,
            'avg_ltv': (total_ltv / len(rows)).quantize(Decimal('0.01')) if rows else ZERO,
            'total_deposited': sum((row['total_deposited'] for row in rows), ZERO),
            'total_withdrawn': sum((row['total_withdrawn'] for row in rows), ZERO),
            'total_commission_cost': sum((row['commission_cost'] for row in rows), ZERO),
            'client_count': len(rows),
        },
    }


def client_ltv_rows(report) -> List[List[Any]]:
    return [
        [
            row['client_name'], row['agent_name'], row['partner_name'], row['days_active'],
            row['total_deposited'], row['total_withdrawn'], row['net_flow'],
            row['commission_cost'], row['ltv'], row['monthly_ltv'],
        ]
        for row in report['clients']
    ]


# ---------------------------------------------------------------------------
# Partner profit
# ---------------------------------------------------------------------------

PARTNER_PROFIT_HEADERS = [
    'Partner Name', 'Type', 'Transaction Count', 'Gross Total', 'Fees',
    'Partner Share', 'Company Share', 'Pending', 'Paid',
]


def partner_profit_report(date_from=None, date_to=None, partner_id=None) -> Dict[str, Any]:
    details = ProfitShareDetail.objects.select_related('partner')
    if partner_id:
        details = details.filter(partner_id=partner_id)
    details = _date_range(details, date_from, date_to)

    by_partner = OrderedDict()
    totals = {'gross': ZERO, 'fees': ZERO, 'partner_share': ZERO, 'company_share': ZERO, 'count': 0}

    for detail in details:
        row = by_partner.setdefault(detail.partner_id, {
            'partner_id': detail.partner_id,
            'partner_name': detail.partner.name,
            'partner_type': detail.partner.type,
            'gross_total': ZERO,
            'fee_total': ZERO,
            'partner_total': ZERO,
            'company_total': ZERO,
            'transaction_count': 0,
            'pending_amount': ZERO,
            'paid_amount': ZERO,
        })
        row['gross_total'] += detail.gross_amount
        row['fee_total'] += detail.fee_amount
        row['partner_total'] += detail.partner_amount
        row['company_total'] += detail.company_amount
        row['transaction_count'] += 1
        if detail.status == 'paid':
            row['paid_amount'] += detail.partner_amount
        else:
            row['pending_amount'] += detail.partner_amount

        totals['gross'] += detail.gross_amount
        totals['fees'] += detail.fee_amount
        totals['partner_share'] += detail.partner_amount
        totals['company_share'] += detail.company_amount
        totals['count'] += 1

    return {'by_partner': list(by_partner.values()), 'totals': totals}


def partner_profit_rows(report) -> List[List[Any]]:
    return [
        [
            row['partner_name'], row['partner_type'], row['transaction_count'], row['gross_total'],
            row['fee_total'], row['partner_total'], row['company_total'],
            row['pending_amount'], row['paid_amount'],
        ]
        for row in report['by_partner']
    ]


# ---------------------------------------------------------------------------
# Agent dashboard
# ---------------------------------------------------------------------------

def _start_of_month(moment):
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _sum_amount(queryset) -> Decimal:
    return queryset.aggregate(total=Sum('amount'))['total'] or ZERO


def agent_earnings(agent) -> Dict[str, Any]:
    """
    Commission earned by ``agent``: paid and pending totals, what was
    allocated this month and the ten latest allocations.
    """
    allocations = BonusAllocation.objects.filter(agent=agent)
    start_of_month = _start_of_month(timezone.localtime())

    recent = []
    for allocation in allocations.select_related('bonus_pool__client').order_by('-created_at', '-id')[:10]:
        recent.append({
            'id': allocation.id,
            'client': allocation.bonus_pool.client.name,
            'type': allocation.type,
            'amount': allocation.amount,
            'status': 'Paid' if allocation.status == BonusAllocation.STATUS_PAID else 'Pending',
            'date': timezone.localtime(allocation.created_at).date(),
        })

    return {
        'total_earnings': _sum_amount(allocations.filter(status=BonusAllocation.STATUS_PAID)),
        'pending_payout': _sum_amount(allocations.filter(status=BonusAllocation.STATUS_PENDING)),
        'this_month': _sum_amount(allocations.filter(created_at__gte=start_of_month)),
        'recent_transactions': recent,
    }


def agent_dashboard_stats(agent) -> Dict[str, Any]:
    """
    Headline numbers for the agent home screen.

    ``earnings_change`` compares commission paid this month with last month,
    as a percentage with one decimal; 0 when nothing was paid last month.
    """
    now = timezone.localtime()
    start_of_month = _start_of_month(now)
    start_of_last_month = _start_of_month(start_of_month - timedelta(days=1))

    counts = Client.objects.filter(agent=agent).aggregate(
        total=Count('id'),
        active=Count('id', filter=Q(intake_status__in=[Client.STATUS_PHONE_ISSUED, Client.STATUS_IN_EXECUTION])),
        completed=Count('id', filter=Q(intake_status=Client.STATUS_APPROVED,
                                       status_changed_at__gte=start_of_month)),
    )
    pending_tasks = ToDo.objects.filter(
        assigned_to=agent, status__in=ToDo.OPEN_STATUSES + (ToDo.STATUS_OVERDUE,)
    ).count()

    paid = BonusAllocation.objects.filter(agent=agent, status=BonusAllocation.STATUS_PAID)
    paid_this_month = _sum_amount(paid.filter(paid_at__gte=start_of_month))
    paid_last_month = _sum_amount(paid.filter(paid_at__gte=start_of_last_month, paid_at__lt=start_of_month))
    change = 0.0
    if paid_last_month:
        change = round(float((paid_this_month - paid_last_month) / paid_last_month * 100), 1)

    return {
        'total_clients': counts['total'],
        'active_clients': counts['active'],
        'completed_this_month': counts['completed'],
        'pending_tasks': pending_tasks,
        'earnings': _sum_amount(paid),
        'earnings_this_month': paid_this_month,
        'earnings_change': change,
    }


# ---------------------------------------------------------------------------
# Back-office overview
# ---------------------------------------------------------------------------

def pending_action_counts() -> Dict[str, int]:
    return {
        'pending_intake': Client.objects.filter(intake_status=Client.STATUS_READY_FOR_APPROVAL).count(),
        'pending_verification': ClientPlatform.objects.filter(status=ClientPlatform.STATUS_PENDING_REVIEW).count(),
        'pending_settlement': FundMovement.objects.filter(
            settlement_status=FundMovement.SETTLEMENT_PENDING_REVIEW
        ).count(),
        'overdue_tasks': ToDo.objects.filter(status=ToDo.STATUS_OVERDUE).count(),
    }


def overview_stats() -> Dict[str, int]:
    start_of_day = timezone.localtime().replace(hour=0, minute=0, second=0, microsecond=0)
    counts = Client.objects.aggregate(
        ready_for_approval=Count('id', filter=Q(intake_status=Client.STATUS_READY_FOR_APPROVAL)),
        approved_today=Count('id', filter=Q(intake_status=Client.STATUS_APPROVED,
                                            status_changed_at__gte=start_of_day)),
        active=Count('id', filter=Q(intake_status__in=[
            Client.STATUS_PHONE_ISSUED, Client.STATUS_IN_EXECUTION, Client.STATUS_READY_FOR_APPROVAL,
        ])),
        delayed=Count('id', filter=Q(intake_status=Client.STATUS_EXECUTION_DELAYED)),
    )
    platform_reviews = ClientPlatform.objects.filter(status=ClientPlatform.STATUS_PENDING_REVIEW).count()

    return {
        'pending_reviews': counts['ready_for_approval'] + platform_reviews,
        'approved_today': counts['approved_today'],
        'urgent_actions': ToDo.objects.filter(priority__lte=1, status__in=ToDo.OPEN_STATUSES).count(),
        'active_clients': counts['active'],
        'pending_extensions': ExtensionRequest.objects.filter(status=ExtensionRequest.STATUS_PENDING).count(),
        'delayed_clients': counts['delayed'],
    }


def delayed_clients() -> List[Dict[str, Any]]:
    """EXECUTION_DELAYED clients, longest delayed first, with their to-do progress."""
    clients = Client.objects.filter(intake_status=Client.STATUS_EXECUTION_DELAYED).select_related('agent').annotate(
        completed_todos=Count('todos', filter=Q(todos__status=ToDo.STATUS_COMPLETED)),
        open_todos=Count('todos', filter=Q(todos__status__in=ToDo.OPEN_STATUSES + (ToDo.STATUS_OVERDUE,))),
    ).order_by('status_changed_at', 'id')

    return [
        {
            'id': client.id,
            'name': client.name,
            'agent_name': client.agent.name if client.agent else 'Unassigned',
            'execution_deadline': client.execution_deadline,
            'delayed_since': client.status_changed_at,
            'pending_todos_count': client.open_todos,
            'completed_todos_count': client.completed_todos,
        }
        for client in clients
    ]
