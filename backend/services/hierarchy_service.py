"""
Hierarchy Service

Read-only views of the agent supervisor tree: the chain above an agent, the
team below them and a rollup of the team's client numbers.
"""

from collections import deque
from typing import Any, Dict, List

from django.contrib.auth import get_user_model
from django.db.models import Count, Q

from .base_service import BaseService, ServiceResult
from clients.models import Client


def get_all_subordinate_ids(agent_id: int) -> List[int]:
    """
    Ids of every active agent below ``agent_id``, breadth first.

    The agent itself is not included. Cycles in the supervisor links are
    visited once.
    """
    User = get_user_model()
    ids = []
    queue = deque([agent_id])
    visited = set()

    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)

        for sub_id in User.objects.filter(supervisor_id=current, is_active=True).values_list('id', flat=True):
            if sub_id != agent_id and sub_id not in ids:
                ids.append(sub_id)
            queue.append(sub_id)

    return ids


def _with_client_counts(queryset):
    return queryset.annotate(
        total_clients=Count('clients', distinct=True),
        approved_clients=Count('clients', filter=Q(clients__intake_status=Client.STATUS_APPROVED), distinct=True),
        rejected_clients=Count('clients', filter=Q(clients__intake_status=Client.STATUS_REJECTED), distinct=True),
    )


def _agent_summary(user) -> Dict[str, Any]:
    decided = user.approved_clients + user.rejected_clients
    return {
        'id': user.id,
        'name': user.name,
        'email': user.email,
        'role': user.role,
        'tier': user.tier,
        'star_level': user.star_level,
        'is_active': user.is_active,
        'total_clients': user.total_clients,
        'approved_clients': user.approved_clients,
        'success_rate': round(user.approved_clients / decided * 100) if decided else 0,
    }


class HierarchyService(BaseService):
    """
    Staff may look at any agent. Agents may look at themselves and anyone
    in their own team.
    """

    def get_service_name(self) -> str:
        return "hierarchy_service"

    def _check_access(self, agent_id: int):
        if not self.user:
            return self.create_error_result("Authentication required")
        if self.is_staff_user():
            return None
        if self.user_has_role('AGENT') and (
            agent_id == self.user.pk or agent_id in get_all_subordinate_ids(self.user.pk)
        ):
            return None
        return self.create_error_result("Unauthorized")

    def _load(self, agent_ids):
        User = get_user_model()
        return {user.id: user for user in _with_client_counts(User.objects.filter(pk__in=agent_ids))}

    def get_agent_hierarchy(self, agent_id: int) -> ServiceResult:
        """
        The agent, the supervisor chain above them (nearest first) and the
        tree of active subordinates with the team size.
        """
        agent_id = int(agent_id)
        denied = self._check_access(agent_id)
        if denied:
            return denied

        User = get_user_model()
        agent = _with_client_counts(User.objects.filter(pk=agent_id)).first()
        if agent is None:
            return self.create_error_result("Agent not found")

        chain = []
        visited = {agent.id}
        supervisor_id = agent.supervisor_id
        while supervisor_id and supervisor_id not in visited:
            visited.add(supervisor_id)
            supervisor = _with_client_counts(User.objects.filter(pk=supervisor_id)).first()
            if supervisor is None:
                break
            chain.append(_agent_summary(supervisor))
            supervisor_id = supervisor.supervisor_id

        subordinate_ids = get_all_subordinate_ids(agent.id)
        loaded = self._load(subordinate_ids)
        children = {}
        for user in loaded.values():
            children.setdefault(user.supervisor_id, []).append(user)

        def build(user, seen):
            node = _agent_summary(user)
            node['subordinates'] = [
                build(child, seen | {child.id})
                for child in sorted(children.get(user.id, []), key=lambda u: (u.first_name, u.last_name, u.id))
                if child.id not in seen
            ]
            return node

        return self.create_result(
            success=True,
            data={
                'agent': _agent_summary(agent),
                'supervisor_chain': chain,
                'subordinate_tree': build(agent, {agent.id}),
                'team_size': len(subordinate_ids),
            }
        )

    def get_team_rollup(self, agent_id: int) -> ServiceResult:
        agent_id = int(agent_id)
        denied = self._check_access(agent_id)
        if denied:
            return denied

        if not get_user_model().objects.filter(pk=agent_id).exists():
            return self.create_error_result("Agent not found")

        subordinate_ids = get_all_subordinate_ids(agent_id)
        team = list(self._load(subordinate_ids).values())

        total_clients = sum(user.total_clients for user in team)
        approved_clients = sum(user.approved_clients for user in team)
        tier_breakdown = {}
        for user in team:
            tier_breakdown[user.tier] = tier_breakdown.get(user.tier, 0) + 1

        return self.create_result(
            success=True,
            data={
                'total_agents': len(team),
                'active_agents': sum(1 for user in team if user.is_active),
                'total_clients': total_clients,
                'approved_clients': approved_clients,
                'team_success_rate': round(approved_clients / total_clients * 100) if total_clients else 0,
                'tier_breakdown': tier_breakdown,
            }
        )
