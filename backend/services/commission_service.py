"""
Commission Service

Star-pool bonus distribution for approved clients.

Every approved client funds one pool: a direct bonus to the closing agent
plus a fixed number of star slices handed up the supervisor chain, each
agent taking at most as many slices as their star level.
"""

from decimal import Decimal
from typing import List, Optional, Tuple
from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from .base_service import BaseService, ServiceResult
from clients.models import Client
from commission.models import BonusAllocation, BonusPool
import logging

logger = logging.getLogger(__name__)

# (max approved clients, tier, star level); anything above the last row is 4-star
STAR_THRESHOLDS: List[Tuple[int, str, int]] = [
    (2, 'rookie', 0),
    (6, '1-star', 1),
    (12, '2-star', 2),
    (20, '3-star', 3),
]
TOP_TIER = ('4-star', 4)


def star_level_for(approved_count: int) -> Tuple[str, int]:
    for ceiling, tier, level in STAR_THRESHOLDS:
        if approved_count <= ceiling:
            return tier, level
    return TOP_TIER


class CommissionService(BaseService):
    """
    Bonus pool creation, distribution, payout and agent summaries.
    """

    def get_service_name(self) -> str:
        return "commission_service"

    @property
    def direct_amount(self) -> Decimal:
        return settings.MAESTRO['DIRECT_BONUS_AMOUNT']

    @property
    def slice_amount(self) -> Decimal:
        return settings.MAESTRO['STAR_SLICE_AMOUNT']

    @property
    def total_slices(self) -> int:
        return settings.MAESTRO['STAR_POOL_SLICES']

    def recalculate_star_level(self, agent_id: int) -> ServiceResult:
        """
        Re-derive an agent's tier from the number of approved clients they closed.
        """
        User = get_user_model()
        try:
            agent = User.objects.get(pk=agent_id)
        except User.DoesNotExist:
            return self.create_error_result("Agent not found")

        approved = Client.objects.filter(agent=agent, intake_status=Client.STATUS_APPROVED).count()
        tier, level = star_level_for(approved)

        if agent.star_level != level or agent.tier != tier:
            old_level = agent.star_level
            agent.star_level = level
            agent.tier = tier
            agent.save(update_fields=['star_level', 'tier'])
            logger.info(f"Agent {agent.email} star level {old_level} -> {level} ({approved} approved clients)")

        return self.create_result(
            success=True,
            data={'agent_id': agent.id, 'star_level': level, 'tier': tier, 'approved_clients': approved}
        )

    def create_bonus_pool(self, client_id: int) -> ServiceResult:
        """
        Create and distribute the pool for an approved client.

        Idempotent: an existing pool is returned untouched.
        """
        try:
            client = Client.objects.select_related('agent').get(pk=client_id)
        except Client.DoesNotExist:
            return self.create_error_result("Client not found")

        existing = BonusPool.objects.filter(client=client).first()
        if existing:
            return self.create_result(success=True, data={'pool_id': existing.id, 'created': False})

        if client.agent_id is None:
            return self.create_error_result("Client has no assigned agent")

        star_pool_amount = self.slice_amount * self.total_slices
        pool = BonusPool.objects.create(
            client=client,
            closer=client.agent,
            direct_amount=self.direct_amount,
            star_pool_amount=star_pool_amount,
            total_amount=self.direct_amount + star_pool_amount,
        )
        self.log_service_action("create_bonus_pool", {'client_id': client.id, 'pool_id': pool.id})

        distribution = self.distribute_star_pool(pool.id)
        if not distribution.success:
            return distribution

        self.recalculate_star_level(client.agent_id)

        return self.create_result(success=True, data={'pool_id': pool.id, 'created': True, **distribution.data})

    def distribute_star_pool(self, pool_id: int) -> ServiceResult:
        """
        Allocate a pending pool.

        1. Direct bonus to the closer.
        2. Walk up from the closer; each agent takes min(star_level, remaining) slices.
        3. Leftover slices backfill to the highest-star agent seen, up to their star level.
        4. Whatever is still left is recycled.
        """
        try:
            pool = BonusPool.objects.select_related('closer').get(pk=pool_id)
        except BonusPool.DoesNotExist:
            return self.create_error_result("Bonus pool not found")

        if pool.status != BonusPool.STATUS_PENDING:
            return self.create_result(success=True, data={'pool_id': pool.id, 'skipped': True})

        closer = pool.closer
        allocations = [
            BonusAllocation(
                bonus_pool=pool,
                agent=closer,
                type=BonusAllocation.TYPE_DIRECT,
                slices=0,
                amount=self.direct_amount,
                star_level_at_time=closer.star_level,
            )
        ]

        remaining = self.total_slices
        visited = []
        seen_ids = set()
        highest = None
        current = closer

        while current is not None and remaining > 0 and current.id not in seen_ids:
            seen_ids.add(current.id)
            take = min(current.star_level, remaining)
            if take > 0:
                allocations.append(BonusAllocation(
                    bonus_pool=pool,
                    agent=current,
                    type=BonusAllocation.TYPE_STAR_SLICE,
                    slices=take,
                    amount=self.slice_amount * take,
                    star_level_at_time=current.star_level,
                ))
                remaining -= take
                visited.append({'agent_id': current.id, 'star_level': current.star_level, 'slices_given': take})

            if highest is None or current.star_level > highest.star_level:
                highest = current

            current = current.supervisor

        if remaining > 0 and highest is not None and highest.star_level > 0:
            already_given = sum(v['slices_given'] for v in visited if v['agent_id'] == highest.id)
            backfill = min(highest.star_level - already_given, remaining)
            if backfill > 0:
                allocations.append(BonusAllocation(
                    bonus_pool=pool,
                    agent=highest,
                    type=BonusAllocation.TYPE_BACKFILL,
                    slices=backfill,
                    amount=self.slice_amount * backfill,
                    star_level_at_time=highest.star_level,
                ))
                remaining -= backfill

        with transaction.atomic():
            BonusAllocation.objects.bulk_create(allocations)
            pool.status = BonusPool.STATUS_DISTRIBUTED
            pool.distributed_slices = self.total_slices - remaining
            pool.recycled_slices = remaining
            pool.hierarchy_snapshot = visited
            pool.save(update_fields=[
                'status', 'distributed_slices', 'recycled_slices', 'hierarchy_snapshot', 'updated_at'
            ])

        logger.info(
            f"Pool {pool.id} distributed: {pool.distributed_slices} slices, {pool.recycled_slices} recycled"
        )
        return self.create_result(
            success=True,
            data={
                'pool_id': pool.id,
                'allocations': len(allocations),
                'distributed_slices': pool.distributed_slices,
                'recycled_slices': pool.recycled_slices,
            }
        )

    def get_agent_commission_summary(self, agent_id: int) -> ServiceResult:
        allocations = BonusAllocation.objects.filter(agent_id=agent_id).select_related('bonus_pool__client')

        def total(queryset):
            return queryset.aggregate(total=Sum('amount'))['total'] or Decimal('0.00')

        return self.create_result(
            success=True,
            data={
                'agent_id': agent_id,
                'total_earned': total(allocations),
                'pending': total(allocations.filter(status=BonusAllocation.STATUS_PENDING)),
                'paid': total(allocations.filter(status=BonusAllocation.STATUS_PAID)),
                'direct_bonuses': allocations.filter(type=BonusAllocation.TYPE_DIRECT).count(),
                'star_slices': allocations.filter(
                    type__in=[BonusAllocation.TYPE_STAR_SLICE, BonusAllocation.TYPE_BACKFILL]
                ).aggregate(total=Sum('slices'))['total'] or 0,
                'allocations': list(allocations),
            }
        )

    def mark_allocation_paid(self, allocation_id: Optional[int]) -> ServiceResult:
        denied = self.require_roles(self.STAFF_ROLES)
        if denied:
            return denied
        if not allocation_id:
            return self.create_error_result("Allocation ID is required")

        from .transaction_service import TransactionService

        with transaction.atomic():
            try:
                allocation = BonusAllocation.objects.select_for_update().get(pk=allocation_id)
            except BonusAllocation.DoesNotExist:
                return self.create_error_result("Allocation not found")

            if allocation.status == BonusAllocation.STATUS_PAID:
                return self.create_error_result("Allocation is already paid")

            allocation.status = BonusAllocation.STATUS_PAID
            allocation.paid_at = timezone.now()
            allocation.save(update_fields=['status', 'paid_at'])
            TransactionService(self.user).record_commission_transaction(allocation)

        self.log_service_action("mark_allocation_paid", {'allocation_id': allocation.id})
        return self.create_result(success=True, data={'allocation_id': allocation.id})

    def bulk_mark_paid(self, allocation_ids) -> ServiceResult:
        denied = self.require_roles(self.STAFF_ROLES)
        if denied:
            return denied
        if not allocation_ids:
            return self.create_error_result("No allocations selected")

        from .transaction_service import TransactionService

        ledger = TransactionService(self.user)
        with transaction.atomic():
            pending = list(
                BonusAllocation.objects.select_for_update().filter(
                    id__in=allocation_ids, status=BonusAllocation.STATUS_PENDING
                )
            )
            now = timezone.now()
            for allocation in pending:
                allocation.status = BonusAllocation.STATUS_PAID
                allocation.paid_at = now
                allocation.save(update_fields=['status', 'paid_at'])
                ledger.record_commission_transaction(allocation)

        self.log_service_action("bulk_mark_paid", {'count': len(pending)})
        return self.create_result(success=True, data={'updated': len(pending)})
