# incidenthook/services/incidents.py
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from incidenthook.errors import PersistenceError
from incidenthook.models import Incident

log = logging.getLogger(__name__)


class IncidentRecorder:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def save(self, data: dict) -> Incident:
        """Insert de una fila en `incidents`. Levanta PersistenceError si falla."""
        db = self.session_factory()
        try:
            row = Incident(**data)
            db.add(row)
            db.commit()
            db.refresh(row)
            db.expunge(row)
            return row
        except SQLAlchemyError as e:
            db.rollback()
            log.error("[incidents] save %s failed: %s", data.get("incident_id"), e)
            raise PersistenceError(str(e)) from e
        finally:
            db.close()

    def get(self, incident_id: str) -> Optional[Incident]:
        db = self.session_factory()
        try:
            row = db.get(Incident, incident_id)
            if row is not None:
                db.expunge(row)
            return row
        except SQLAlchemyError as e:
            log.error("[incidents] get %s failed: %s", incident_id, e)
            raise PersistenceError(str(e)) from e
        finally:
            db.close()
