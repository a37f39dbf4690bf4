from django.urls import path

from apps.reports.views import CustomerListView, RevenueExportView, RevenueReportView

urlpatterns = [
    path("reports/revenue/", RevenueReportView.as_view(), name="revenue-report"),
    path("export/revenue/", RevenueExportView.as_view(), name="revenue-export"),
    path("customers/", CustomerListView.as_view(), name="customer-list"),
]
