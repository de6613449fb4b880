"""
Resource inventory service.

Creates resources and their serialized items. Assignment rules live in
assignment_service; this module only maintains the catalogue.
"""

import logging

from portal.core.exceptions import NotFoundError, ValidationError
from portal.models import db
from portal.models.employee import Employee
from portal.models.resource import (
    PERMISSION_LEVELS,
    RESOURCE_STATUSES,
    RESOURCE_TYPES,
    Resource,
    ResourceItem,
)
from portal.services.activity_log import log_audit, log_created_activity

logger = logging.getLogger(__name__)


def create_resource(data: dict, actor_id: str | None = None) -> Resource:
    """Create a resource from API-shaped data (camelCase keys accepted)."""
    name = (data.get("name") or "").strip()
    rtype = (data.get("type") or "").upper()
    permission = (data.get("permissionLevel") or "READ").upper()
    status = (data.get("status") or "ACTIVE").upper()
    quantity = data.get("totalQuantity", 1)

    errors = {}
    if not name:
        errors["name"] = "required"
    if rtype not in RESOURCE_TYPES:
        errors["type"] = f"must be one of {sorted(RESOURCE_TYPES)}"
    if permission not in PERMISSION_LEVELS:
        errors["permissionLevel"] = f"must be one of {sorted(PERMISSION_LEVELS)}"
    if status not in RESOURCE_STATUSES:
        errors["status"] = f"must be one of {sorted(RESOURCE_STATUSES)}"
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
        errors["totalQuantity"] = "must be a positive integer"
    if errors:
        raise ValidationError("Invalid resource data", details=errors)

    owner_id = data.get("ownerId") or actor_id
    custodian_id = data.get("custodianId")
    for label, emp_id in (("Owner", owner_id), ("Custodian", custodian_id)):
        if emp_id and db.session.get(Employee, emp_id) is None:
            raise NotFoundError(resource=label, resource_id=emp_id)

    resource = Resource(
        name=name,
        type=rtype,
        category=data.get("category"),
        description=data.get("description"),
        owner_id=owner_id,
        custodian_id=custodian_id,
        total_quantity=quantity,
        permission_level=permission,
        status=status,
    )
    db.session.add(resource)
    db.session.flush()

    log_audit("RESOURCE", resource.id, actor_id, "created", None, resource.name)
    log_created_activity(
        "RESOURCE", resource.id, resource.name, actor_id,
        metadata={"type": resource.type, "totalQuantity": resource.total_quantity},
        resource_id=resource.id,
    )

    db.session.commit()
    logger.info("Resource created: %s (%s)", resource.id, resource.type)
    return resource


def get_resource(resource_id: str) -> Resource:
    resource = db.session.get(Resource, resource_id) if resource_id else None
    if resource is None:
        raise NotFoundError(resource="Resource", resource_id=resource_id)
    return resource


def add_item(resource_id: str, data: dict, actor_id: str | None = None) -> ResourceItem:
    """Register a serialized unit under a PHYSICAL resource."""
    resource = get_resource(resource_id)
    if not resource.is_physical:
        raise ValidationError("Items can only be added to PHYSICAL resources")

    item = ResourceItem(
        resource_id=resource.id,
        serial_number=data.get("serialNumber"),
        hostname=data.get("hostname"),
        license_key=data.get("licenseKey"),
    )
    db.session.add(item)
    db.session.flush()

    log_audit("RESOURCE", resource.id, actor_id, "itemAdded", None, item.serial_number or item.id)

    db.session.commit()
    return item


def resources_query(rtype=None, status=None, search=None):
    q = Resource.query
    if rtype:
        q = q.filter(Resource.type == rtype.upper())
    if status:
        q = q.filter(Resource.status == status.upper())
    if search:
        q = q.filter(Resource.name.ilike(f"%{search}%"))
    return q.order_by(Resource.created_at.desc(), Resource.name)
