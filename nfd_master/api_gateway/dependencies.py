from fastapi import Request

from ..reporting.service import ReportingService


def get_reporting_service(request: Request) -> ReportingService:
    return request.app.state.reporting
