"""Service layer and its wiring."""

from dataclasses import dataclass
from datetime import timedelta

from faceauth.clients.base import DatabaseManager
from faceauth.services.auth_service import AuthGateway
from faceauth.services.descriptor_service import DescriptorValidator, DistanceScorer
from faceauth.services.enrollment_service import EnrollmentCoordinator
from faceauth.services.file_service import FileService
from faceauth.services.matcher import IdentityMatcher, LinearScanMatcher
from faceauth.services.profile_service import ProfileService
from faceauth.services.session_service import SessionManager


@dataclass
class ServiceContainer:
    """Everything a request handler needs, built once per application."""

    db: DatabaseManager
    validator: DescriptorValidator
    scorer: DistanceScorer
    sessions: SessionManager
    matcher: IdentityMatcher
    enrollment: EnrollmentCoordinator
    auth: AuthGateway
    profiles: ProfileService
    files: FileService


def build_services(settings, db: DatabaseManager, clock=None) -> ServiceContainer:
    validator = DescriptorValidator(min_dimension=settings.descriptor_dimension)
    scorer = DistanceScorer(
        threshold=settings.match_threshold,
        normalize=settings.normalize_descriptors
    )
    sessions = SessionManager(
        db.sessions,
        ttl=timedelta(hours=settings.session_ttl_hours),
        clock=clock
    )
    matcher = LinearScanMatcher(db.identities, scorer, validator)

    return ServiceContainer(
        db=db,
        validator=validator,
        scorer=scorer,
        sessions=sessions,
        matcher=matcher,
        enrollment=EnrollmentCoordinator(
            db.identities,
            sessions,
            validator,
            total_steps=settings.enrollment_steps,
            enforce_order=settings.enrollment_enforce_order
        ),
        auth=AuthGateway(db.identities, sessions, matcher, validator),
        profiles=ProfileService(db.identities),
        files=FileService(
            db.files,
            db.blobs,
            max_upload_bytes=settings.max_upload_bytes,
            allowed_types=settings.allowed_upload_types
        ),
    )


__all__ = [
    "AuthGateway",
    "DescriptorValidator",
    "DistanceScorer",
    "EnrollmentCoordinator",
    "FileService",
    "IdentityMatcher",
    "LinearScanMatcher",
    "ProfileService",
    "ServiceContainer",
    "SessionManager",
    "build_services",
]
