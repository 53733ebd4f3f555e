"""
Search Service

Quick search across clients, agents and to-dos for the top bar.
"""

from django.contrib.auth import get_user_model
from django.db.models import Q

from .base_service import BaseService, ServiceResult
from clients.models import Client
from todos.models import ToDo

MIN_QUERY_LENGTH = 2
RESULTS_PER_CATEGORY = 5


class SearchService(BaseService):

    def get_service_name(self) -> str:
        return "search_service"

    def search(self, query: str) -> ServiceResult:
        query = (query or '').strip()
        if len(query) < MIN_QUERY_LENGTH:
            return self.create_result(success=True, data=[])

        is_agent = self.user.role == 'AGENT'
        results = []

        clients = Client.objects.filter(
            Q(first_name__icontains=query) | Q(last_name__icontains=query)
            | Q(email__icontains=query) | Q(phone__icontains=query)
        )
        if is_agent:
            clients = clients.filter(agent=self.user)
        for client in clients[:RESULTS_PER_CATEGORY]:
            results.append({
                'type': 'client',
                'id': client.id,
                'title': client.name,
                'subtitle': client.email or client.intake_status,
                'status': client.intake_status,
                'link': f"/agent/clients/{client.id}" if is_agent else "/backoffice/client-management",
            })

        if not is_agent:
            User = get_user_model()
            agents = User.objects.filter(role=User.ROLE_AGENT).filter(
                Q(first_name__icontains=query) | Q(last_name__icontains=query)
                | Q(email__icontains=query) | Q(phone__icontains=query)
            )
            for agent in agents[:RESULTS_PER_CATEGORY]:
                results.append({
                    'type': 'agent',
                    'id': agent.id,
                    'title': agent.name,
                    'subtitle': f"{agent.tier} • {agent.email}",
                    'status': 'active' if agent.is_active else 'inactive',
                    'link': f"/backoffice/agent-management/{agent.id}",
                })

        todos = ToDo.objects.filter(title__icontains=query)
        if is_agent:
            todos = todos.filter(assigned_to=self.user)
        for todo in todos[:RESULTS_PER_CATEGORY]:
            results.append({
                'type': 'task',
                'id': todo.id,
                'title': todo.title,
                'subtitle': f"{todo.type} • {todo.status}",
                'status': todo.status,
                'link': "/agent/todo-list" if is_agent else "/backoffice/todo-list",
            })

        return self.create_result(success=True, data=results)
