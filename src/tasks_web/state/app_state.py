from dataclasses import dataclass, field

from tasks_web.config.settings import Settings
from tasks_web.services.database_client import DatabaseClient
from tasks_web.services.firebase_service import FirebaseClientFactory


@dataclass
class AppState:
    settings: Settings = field(default_factory=Settings)
    firebase: FirebaseClientFactory = field(default_factory=FirebaseClientFactory)

    def database(self) -> DatabaseClient:
        return self.firebase.client()
