from django.urls import path

from . import views

urlpatterns = [
    # ==================== EXPORTS ====================
    path('exports/clients/', views.clients_export, name='export-clients'),
    path('exports/agents/', views.agents_export, name='export-agents'),
    path('exports/settlements/', views.settlements_export, name='export-settlements'),

    # ==================== REPORTS ====================
    path('reports/agent-commission/', views.agent_commission_report, name='report-agent-commission'),
    path('reports/client-ltv/', views.client_ltv_report, name='report-client-ltv'),
    path('reports/partner-profit/', views.partner_profit_report, name='report-partner-profit'),

    # ==================== OVERVIEW ====================
    path('overview/', views.overview, name='overview'),
    path('overview/delayed-clients/', views.delayed_clients, name='delayed-clients'),

    # ==================== SEARCH & UPLOAD ====================
    path('search/', views.search, name='search'),
    path('upload/', views.upload, name='upload'),
]
