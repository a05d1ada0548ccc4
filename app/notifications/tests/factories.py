"""
Factory Boy factories for notification test data.

Usage:
    from notifications.tests.factories import SmsConfigurationFactory, SmsTemplateFactory

    config = SmsConfigurationFactory(organization=organization)
    template = SmsTemplateFactory(organization=organization, name="payment_confirmation")
"""

import factory

from notifications.models import SmsConfiguration, SmsProvider, SmsTemplate
from tenants.tests.factories import OrganizationFactory


class SmsConfigurationFactory(factory.django.DjangoModelFactory):
    """Factory for a complete TextSMS configuration."""

    class Meta:
        model = SmsConfiguration
        skip_postgeneration_save = True

    organization = factory.SubFactory(OrganizationFactory)
    provider = SmsProvider.TEXT_SMS
    api_key = "textsms-api-key"
    partner_id = "1234"
    sender_id = "FIBRENET"
    is_active = True


class ZetaTelConfigurationFactory(SmsConfigurationFactory):
    """Factory for a complete ZetaTel configuration."""

    provider = SmsProvider.ZETATEL
    api_key = ""
    partner_id = ""
    user_id = "fibrenet"
    password = "zetatel-password"


class SmsTemplateFactory(factory.django.DjangoModelFactory):
    """Factory for a payment confirmation template."""

    class Meta:
        model = SmsTemplate
        skip_postgeneration_save = True

    organization = factory.SubFactory(OrganizationFactory)
    name = "payment_confirmation"
    body = "Paid KES {{amount}} for {{packageName}}. Active until {{expiryDate}}."
    variables = factory.LazyFunction(lambda: ["amount", "packageName", "expiryDate"])
    is_active = True
