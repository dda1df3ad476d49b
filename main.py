"""
Health check endpoint for the rental listings API.

This module provides a simple health check endpoint that can be used
for monitoring and load balancer health checks.
"""

from utils.decorators import lambda_handler
from utils.responses import success_response

SERVICE_NAME = "rental-listings-api"
SERVICE_VERSION = "1.0.0"


@lambda_handler(log_event=False)
def healthz(event, context):
    """
    Report that the service is running. GET /healthz

    Does not require authentication and touches no backing service.
    """
    return success_response(
        data={
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
        },
        include_success=False,
    )
