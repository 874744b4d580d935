# booking_api/services/directory/directory_service.py
"""Read-only lookups of businesses, services and resources"""
import logging
from typing import Iterable, List, Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from booking_api.core.exceptions import (
    InvalidInputError,
    NotFoundError,
    ERR_BUSINESS_NOT_FOUND,
    ERR_INVALID_ID,
    ERR_RESOURCE_NOT_FOUND,
    ERR_SERVICE_NOT_FOUND,
)
from booking_api.models.business import Business, STATUS_ACTIVE
from booking_api.models.resource import Resource
from booking_api.models.service import Service

logger = logging.getLogger(__name__)


def parse_id(value: Union[str, UUID, None], field: str) -> UUID:
    """Parse an identifier or raise InvalidInputError naming the field"""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise InvalidInputError(ERR_INVALID_ID.format(field=field))


def parse_optional_id(value, field: str) -> Optional[UUID]:
    if value in (None, ""):
        return None
    return parse_id(value, field)


class DirectoryService:
    """Business, service and resource directory used by the scheduling core"""

    @staticmethod
    def get_active_business(
            db: Session,
            business_id: Union[str, UUID, None] = None,
            slug: Optional[str] = None
    ) -> Business:
        """Look a business up by id or slug; inactive businesses are not found"""
        query = db.query(Business)
        if business_id is not None:
            query = query.filter(Business.id == parse_id(business_id, "businessId"))
        elif slug:
            query = query.filter(Business.slug == slug)
        else:
            raise NotFoundError(ERR_BUSINESS_NOT_FOUND)

        business = query.first()
        if not business or business.status != STATUS_ACTIVE:
            raise NotFoundError(ERR_BUSINESS_NOT_FOUND)
        return business

    @staticmethod
    def get_service(
            db: Session,
            business_id: UUID,
            service_id: Union[str, UUID],
            active_only: bool = True
    ) -> Service:
        query = db.query(Service).filter(
            Service.id == parse_id(service_id, "serviceId"),
            Service.business_id == business_id,
        )
        if active_only:
            query = query.filter(Service.is_active == True)  # noqa: E712

        service = query.first()
        if not service:
            raise NotFoundError(ERR_SERVICE_NOT_FOUND)
        return service

    @staticmethod
    def get_active_service(db: Session, business_id: UUID, service_id: Union[str, UUID]) -> Service:
        return DirectoryService.get_service(db, business_id, service_id, active_only=True)

    @staticmethod
    def list_active_resources(
            db: Session,
            business_id: UUID,
            resource_ids: Optional[Iterable[UUID]] = None
    ) -> List[Resource]:
        """Active resources of a business, optionally restricted to given ids"""
        query = db.query(Resource).filter(
            Resource.business_id == business_id,
            Resource.is_active == True,  # noqa: E712
        )
        if resource_ids is not None:
            ids = list(resource_ids)
            if not ids:
                return []
            query = query.filter(Resource.id.in_(ids))
        return query.order_by(Resource.name, Resource.id).all()

    @staticmethod
    def get_active_resource(db: Session, business_id: UUID, resource_id: Union[str, UUID]) -> Resource:
        resource = db.query(Resource).filter(
            Resource.id == parse_id(resource_id, "resourceId"),
            Resource.business_id == business_id,
            Resource.is_active == True,  # noqa: E712
        ).first()
        if not resource:
            raise NotFoundError(ERR_RESOURCE_NOT_FOUND)
        return resource
