"""
Onboarding Resource Assigner.

A new employee counts as onboarded once they hold at least
``ONBOARDING_MIN_RESOURCES`` active assignments (and the inventory has
something to give). Otherwise assign_onboarding_resources() hands out up to
``ONBOARDING_MAX_RESOURCES`` ACTIVE resources of the configured types through
the regular assignment path.

Runs on login. It never raises: every problem ends up in the ``errors`` list
of the summary and the caller carries on.
"""

import logging

from flask import current_app

from portal.core.exceptions import NotFoundError
from portal.models import db
from portal.models.employee import Employee
from portal.models.resource import Resource, ResourceAssignment
from portal.services.activity_log import log_timeline_activity
from portal.services.approver_resolution import find_ceo
from portal.services.assignment_service import create_assignment

logger = logging.getLogger(__name__)


def _candidate_resources():
    types = current_app.config.get("ONBOARDING_RESOURCE_TYPES", ("PHYSICAL", "SOFTWARE"))
    limit = current_app.config.get("ONBOARDING_MAX_RESOURCES", 3)
    return (
        Resource.query.filter(Resource.status == "ACTIVE", Resource.type.in_(types))
        .order_by(Resource.created_at, Resource.name)
        .limit(limit)
        .all()
    )


def check_onboarding_status(employee_id: str) -> dict:
    """Return ``{completed, assignedResources, expectedResources, missingResources}``."""
    employee = db.session.get(Employee, employee_id) if employee_id else None
    if employee is None:
        raise NotFoundError(resource="Employee", resource_id=employee_id)

    assigned = ResourceAssignment.query.filter_by(employee_id=employee.id, status="ACTIVE").count()
    available = Resource.query.filter_by(status="ACTIVE").count()
    min_required = current_app.config.get("ONBOARDING_MIN_RESOURCES", 1)
    has_basic = assigned >= min_required

    return {
        "completed": has_basic and available > 0,
        "assignedResources": assigned,
        "expectedResources": min(current_app.config.get("ONBOARDING_MAX_RESOURCES", 3), available),
        "missingResources": [] if has_basic else ["Basic resources needed for onboarding"],
    }


def onboarding_actor(employee_id: str) -> str:
    """Who automatic assignments are recorded against: the CEO, else the employee."""
    ceo = find_ceo()
    return ceo.id if ceo else employee_id


def assign_onboarding_resources(employee_id: str, performed_by: str | None = None) -> dict:
    """Assign onboarding resources; returns ``{assigned, created, errors}``.

    ``performed_by`` defaults to onboarding_actor(), never the caller.
    """
    summary = {"assigned": 0, "created": 0, "errors": []}

    try:
        employee = db.session.get(Employee, employee_id) if employee_id else None
        if employee is None:
            summary["errors"].append("Employee not found")
            return summary
        if performed_by is None:
            performed_by = onboarding_actor(employee.id)

        resources = _candidate_resources()
        if not resources:
            summary["errors"].append(
                "No suitable resources found for onboarding. "
                "Please ensure you have Physical or Software resources available."
            )
            return summary

        for resource in resources:
            already = ResourceAssignment.query.filter_by(
                resource_id=resource.id, employee_id=employee.id, status="ACTIVE",
            ).first()
            if already:
                logger.debug("%s already assigned to %s", resource.name, employee.id)
                continue

            # Each resource gets its own SAVEPOINT; a failure undoes only that one.
            try:
                with db.session.begin_nested():
                    result = create_assignment(
                        resource.id,
                        employee.id,
                        performed_by,
                        notes="Automatically assigned during onboarding process",
                        commit=False,
                    )
            except Exception as exc:
                logger.warning(
                    "Onboarding assignment of %s to %s failed", resource.id, employee.id, exc_info=True,
                )
                summary["errors"].append(f"Failed to assign {resource.name}: {exc}")
                continue
            if result.success:
                summary["assigned"] += 1
            else:
                summary["errors"].append(f"Failed to assign {resource.name}: {result.error}")

        log_timeline_activity(
            entity_type="EMPLOYEE",
            entity_id=employee.id,
            activity_type="ONBOARDING_COMPLETED",
            title=f"Onboarding resources assigned to {employee.name}",
            description=(
                f"Automatic onboarding process completed for {employee.name}. "
                f"{summary['assigned']} resources assigned from available inventory."
            ),
            metadata={
                "role": employee.role,
                "department": employee.department,
                "resourcesAssigned": summary["assigned"],
                "resourcesCreated": summary["created"],
                "errors": summary["errors"],
                "onboardingMethod": "automatic_from_inventory",
            },
            performed_by=performed_by,
            employee_id=employee.id,
        )
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        logger.exception("Onboarding failed for employee %s", employee_id)
        summary["errors"].append(f"Failed to complete onboarding: {exc}")

    logger.info(
        "Onboarding for %s: %d assigned, %d created, %d error(s)",
        employee_id, summary["assigned"], summary["created"], len(summary["errors"]),
    )
    return summary
