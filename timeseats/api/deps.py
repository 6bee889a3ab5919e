"""
TimesEats — FastAPI dependencies
"""
from fastapi import Request

from timeseats.services.factory import SalesServices


def get_services(request: Request) -> SalesServices:
    return request.app.state.services
