"""Payload → canonical record mappers for Dynamics leads and opportunities.

Each output field is produced by exactly one FieldSource call over a fixed,
ordered pattern list (first match wins). Mappers are pure: no I/O, and they
never reject a record. A record without ``dynamics_id`` is still returned;
the ingestion pipeline decides what to do with it.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from src.crm_ingest.ingestion.campaigns import CampaignCodeResolver
from src.crm_ingest.ingestion.fields import FieldResolver, translate_flag
from src.crm_ingest.ingestion.schemas import CanonicalLead, CanonicalOpportunity

# ── Shared Pattern Lists ───────────────────────────────────────────────────
# Marketing writes UTM values to custom gd_ fields, Customer Insights to
# msdynmkt_ fields, and older forms to plain utm fields.

UTM_CAMPAIGN_PATTERNS = ("gd_utmcampaign", "msdynmkt_utmcampaign", "utmcampaign", "utm_campaign")
UTM_SOURCE_PATTERNS = ("gd_utmsource", "msdynmkt_utmsource", "utmsource", "utm_source")
UTM_MEDIUM_PATTERNS = ("gd_utmmedium", "msdynmkt_utmmedium", "utmmedium", "utm_medium")
UTM_CONTENT_PATTERNS = ("gd_utmcontent", "msdynmkt_utmcontent", "utmcontent", "utm_content")

ORIGINATING_LEAD_ID_KEYS = ("_originatingleadid_value", "originatingleadid")
PARENT_CONTACT_ID_KEYS = ("_parentcontactid_value", "parentcontactid")


class LeadMapper:
    """Maps a raw Dynamics lead payload to a CanonicalLead.

    Args:
        campaigns: Resolver for the UTM → GH code → campaign type tables.
    """

    def __init__(self, campaigns: CampaignCodeResolver) -> None:
        self._campaigns = campaigns

    def map(self, payload: Mapping[str, Any]) -> CanonicalLead:
        f = FieldResolver(payload)
        utm_campaign = f.resolve(*UTM_CAMPAIGN_PATTERNS)
        gh_code, campaign_type = self._campaigns.resolve(utm_campaign)

        return CanonicalLead(
            dynamics_id=f.resolve("leadid"),
            full_name=f.resolve("fullname"),
            first_name=f.resolve("firstname"),
            last_name=f.resolve("lastname"),
            email=f.resolve("emailaddress1"),
            mobile_phone=f.resolve("mobilephone", "telephone1"),
            city=f.resolve("address1_city"),
            postal_code=f.resolve("address1_postalcode"),
            country=f.resolve_display("gmi_country", "address1_country"),
            language=f.resolve_display("gd_language", "language"),
            lead_type=f.resolve_display("gd_type") or f.resolve_display("leadqualitycode"),
            quote_type=f.resolve_display("gd_quotetype"),
            quote_group=f.resolve_display("gd_quotegroup"),
            lead_source=f.resolve_display("leadsourcecode"),
            rating=f.resolve_display("leadqualitycode"),
            status=f.resolve_display("statecode"),
            status_reason=f.resolve_display("statuscode"),
            owner=f.resolve_display("ownerid"),
            utm_campaign=utm_campaign,
            utm_source=f.resolve(*UTM_SOURCE_PATTERNS),
            utm_medium=f.resolve(*UTM_MEDIUM_PATTERNS),
            utm_content=f.resolve(*UTM_CONTENT_PATTERNS),
            gh_code=gh_code,
            campaign_type=campaign_type,
            est_value=f.resolve_number("estimatedvalue"),
            # Either source alone marks an existing contact; the display value
            # is localized per tenant ("Ja", "Oui").
            existing_contact=(
                f.resolve_exact("gd_existingcontact") == "true"
                or f.resolve_display("gd_existingcontact") == "Yes"
            ),
            created_on=f.resolve_date("createdon"),
            modified_on=f.resolve_date("modifiedon"),
        )


class OpportunityMapper:
    """Maps a raw Dynamics opportunity payload to a CanonicalOpportunity.

    ``lead_id`` is left empty here; linking to a lead is the reconciler's job.
    The opportunity's own UTM attribution is resolved so it can stand alone
    when no lead is found.

    Args:
        campaigns: Resolver for the UTM → GH code → campaign type tables.
    """

    def __init__(self, campaigns: CampaignCodeResolver) -> None:
        self._campaigns = campaigns

    def map(self, payload: Mapping[str, Any]) -> CanonicalOpportunity:
        f = FieldResolver(payload)
        utm_campaign = f.resolve(*UTM_CAMPAIGN_PATTERNS)
        gh_code, campaign_type = self._campaigns.resolve(utm_campaign)

        return CanonicalOpportunity(
            dynamics_id=f.resolve("opportunityid"),
            contact_name=f.resolve_display("parentcontactid"),
            account_name=f.resolve_display("customerid"),
            originating_lead_name=(
                f.resolve_display("originatingleadid") or f.resolve_display("parentcontactid")
            ),
            # gd_type is a Dynamics boolean: true = existing customer
            type=translate_flag(f.resolve_display("gd_type"), "Existing", "New"),
            quote_type=f.resolve_display("gd_quotetype"),
            quote_group=f.resolve_display("gd_quotegroup"),
            pipeline_phase=f.resolve_display("salesstagecode", "stepname"),
            status_reason=f.resolve_display("statuscode"),
            rating=f.resolve_display("opportunityratingcode"),
            owner=f.resolve_display("ownerid"),
            branch=f.resolve_display("owningbusinessunit"),
            city=f.resolve("gd_city"),
            postal_code=f.resolve("gd_zippostalcode"),
            country=f.resolve_display("gmi_country"),
            language=None,
            est_revenue=f.resolve_number("estimatedvalue"),
            actual_revenue=f.resolve_number("actualvalue"),
            probability=f.resolve_display("gmi_probabilityoption", "closeprobability"),
            created_on=f.resolve_date("createdon"),
            actual_close_date=f.resolve_date("actualclosedate"),
            est_close_date=f.resolve_date("gmi_closedate") or f.resolve_date("estimatedclosedate"),
            last_activity_date=f.resolve_date("gmi_lastactivitydate_date"),
            visit_date=f.resolve_date("visitdate", "mscrm_visitdate"),
            utm_campaign=utm_campaign,
            gh_code=gh_code,
            campaign_type=campaign_type,
            originating_lead_dynamics_id=f.resolve_exact(*ORIGINATING_LEAD_ID_KEYS),
            parent_contact_dynamics_id=f.resolve_exact(*PARENT_CONTACT_ID_KEYS),
        )
