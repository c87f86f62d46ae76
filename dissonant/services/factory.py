"""Wire services together from settings and a document store."""

from dataclasses import dataclass

from google.cloud import firestore

from dissonant.core.config import Settings
from dissonant.core.document_store import DocumentStore, FirestoreDocumentStore
from dissonant.integrations.firebase.app import get_firebase_app
from dissonant.integrations.firebase.auth import FirebaseAuthClient
from dissonant.integrations.firebase.messaging import PushClient
from dissonant.integrations.labels.client import LabelServiceClient
from dissonant.integrations.shippo.client import ShippoClient
from dissonant.services.curator_stats import CuratorStatsService
from dissonant.services.customer_service import AuthLookup, CustomerResolver
from dissonant.services.email_service import EmailService
from dissonant.services.label_service import ShippingLabelService
from dissonant.services.notification_service import CuratorNotificationService, PushSender
from dissonant.services.order_reconciler import OrderReconciler
from dissonant.services.tracking_service import TrackingService


@dataclass(frozen=True)
class Services:
    store: DocumentStore
    reconciler: OrderReconciler
    tracking: TrackingService
    labels: ShippingLabelService
    notifications: CuratorNotificationService
    curator_stats: CuratorStatsService


def build_services(
    settings: Settings,
    store: DocumentStore,
    *,
    auth_lookup: AuthLookup | None = None,
    push: PushSender | None = None,
) -> Services:
    """Construct every service for one invocation."""
    if auth_lookup is None or push is None:
        app = get_firebase_app(settings.gcp_project_id)
        auth_lookup = auth_lookup or FirebaseAuthClient(app)
        push = push or PushClient(app)

    customers = CustomerResolver(store, auth_lookup)
    curator_stats = CuratorStatsService(store)
    reconciler = OrderReconciler(
        store,
        EmailService(settings, store),
        customers,
        curator_stats=curator_stats,
    )
    return Services(
        store=store,
        reconciler=reconciler,
        tracking=TrackingService(settings, store, ShippoClient(settings), reconciler, customers),
        labels=ShippingLabelService(settings, store, LabelServiceClient(settings), customers),
        notifications=CuratorNotificationService(store, push),
        curator_stats=curator_stats,
    )


def create_firestore_client(settings: Settings) -> firestore.AsyncClient:
    """Create an async Firestore client for the configured project."""
    return firestore.AsyncClient(project=settings.gcp_project_id or None)


def create_firestore_store(settings: Settings) -> FirestoreDocumentStore:
    return FirestoreDocumentStore(create_firestore_client(settings))
