"""Team-scoped lookups and projections for the records agents write."""

import json
from typing import Any

from sqlalchemy.orm import Session

from messageai.db.models import Campaign, IdealCustomerProfile, Lead, Product
from messageai.errors import NotFoundError


def _loads(raw: str | None, default: Any) -> Any:
    if not raw:
        return default
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return default


def dumps_or_none(value: Any) -> str | None:
    """JSON-encode a value, keeping empty values as NULL."""
    if value in (None, {}, []):
        return None
    return json.dumps(value, default=str)


def get_team_product(db: Session, team_id: str, product_id: str) -> Product:
    """Load a product owned by the team.

    Raises:
        NotFoundError: Missing or owned by another team.
    """
    product = db.query(Product).filter_by(id=product_id, team_id=team_id).first()
    if product is None:
        raise NotFoundError("Product", product_id)
    return product


def get_team_icp(db: Session, team_id: str, icp_id: str) -> IdealCustomerProfile:
    """Load an ICP owned by the team.

    Raises:
        NotFoundError: Missing or owned by another team.
    """
    icp = db.query(IdealCustomerProfile).filter_by(id=icp_id, team_id=team_id).first()
    if icp is None:
        raise NotFoundError("ICP", icp_id)
    return icp


def get_team_campaign(db: Session, team_id: str, campaign_id: str) -> Campaign:
    """Load a campaign owned by the team.

    Raises:
        NotFoundError: Missing or owned by another team.
    """
    campaign = db.query(Campaign).filter_by(id=campaign_id, team_id=team_id).first()
    if campaign is None:
        raise NotFoundError("Campaign", campaign_id)
    return campaign


def get_team_lead(db: Session, team_id: str, lead_id: str) -> Lead:
    """Load a lead owned by the team.

    Raises:
        NotFoundError: Missing or owned by another team.
    """
    lead = db.query(Lead).filter_by(id=lead_id, team_id=team_id).first()
    if lead is None:
        raise NotFoundError("Lead", lead_id)
    return lead


def product_to_dict(product: Product) -> dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "features": _loads(product.features_json, []),
        "pricing": _loads(product.pricing_json, None),
        "usps": _loads(product.usps_json, []),
    }


def icp_to_dict(icp: IdealCustomerProfile) -> dict[str, Any]:
    return {
        "id": icp.id,
        "product_id": icp.product_id,
        "name": icp.name,
        "demographics": _loads(icp.demographics_json, {}),
        "firmographics": _loads(icp.firmographics_json, {}),
        "psychographics": _loads(icp.psychographics_json, {}),
        "behaviors": _loads(icp.behaviors_json, {}),
    }


def campaign_platforms(campaign: Campaign) -> list[str]:
    return list(_loads(campaign.platforms_json, []))
