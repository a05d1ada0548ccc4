"""
Root pytest configuration for the Django project.

This module configures pytest-django and provides project-wide fixtures.
Fixtures shared across apps (tenants, packages, subscribers) live here.
"""

import os

import django
import pytest

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")


def pytest_configure():
    """Configure Django settings before tests run."""
    django.setup()

    from django.conf import settings

    from config.celery import app as celery_app

    # Disable throttling during tests to prevent rate limit failures
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}

    # Run queued tasks in-process; no broker is available in tests
    settings.CELERY_TASK_ALWAYS_EAGER = True
    celery_app.conf.task_always_eager = True
    celery_app.conf.task_eager_propagates = False


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (full callback-to-effect workflows)
    - test_views.py, test_services.py, test_tasks.py, etc. → integration
    - test_models.py, test_normalizers.py, test_serializers.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    # Filename patterns for each category
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_tasks.py",
        "test_processor.py",
        "test_correlation.py",
        "test_ledger.py",
        "test_transports.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_serializers.py",
        "test_normalizers.py",
        "test_templates.py",
        "test_state_transitions.py",
    ]

    for item in items:
        # Skip if test already has unit/integration/e2e marker
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filepath = str(item.fspath)
        filename = filepath.split("/")[-1]

        # Check patterns in priority order
        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            # Default: integration (safe for Django where most tests hit DB)
            item.add_marker(pytest.mark.integration)


# =============================================================================
# Shared tenant fixtures
# =============================================================================


@pytest.fixture
def organization(db):
    """Create an active organization."""
    from tenants.tests.factories import OrganizationFactory

    return OrganizationFactory(name="Fibre Net")


@pytest.fixture
def mpesa_config(db, organization):
    """M-Pesa paybill configuration with short code 600100."""
    from tenants.tests.factories import GatewayConfigurationFactory

    return GatewayConfigurationFactory(organization=organization, business_id="600100")


@pytest.fixture
def kopokopo_config(db, organization):
    """Kopo Kopo till configuration with till K555111."""
    from tenants.tests.factories import KopoKopoConfigurationFactory

    return KopoKopoConfigurationFactory(
        organization=organization,
        business_id="K555111",
        api_key="k2-test-api-key",
    )


# =============================================================================
# Shared subscriber fixtures
# =============================================================================


@pytest.fixture
def monthly_package(db, organization):
    """Package: price 1000 for 30 days."""
    from subscribers.tests.factories import ServicePackageFactory

    return ServicePackageFactory(organization=organization, name="Home 10Mbps")


@pytest.fixture
def subscriber(db, organization, monthly_package):
    """Subscriber 'jdoe' on the monthly package."""
    from subscribers.tests.factories import SubscriberFactory

    return SubscriberFactory(
        organization=organization,
        package=monthly_package,
        pppoe_username="jdoe",
        phone_number="254712345678",
    )
