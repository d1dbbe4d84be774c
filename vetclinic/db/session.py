"""
Database session management - SQLAlchemy engine and session factory.
The database holds the meeting provisioning ledger.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from vetclinic.core.config import settings

# ---------------------------------------------------------------------------
# DATABASE ENGINE
# ---------------------------------------------------------------------------
# pool_pre_ping=True: check pooled connections before use so a restarted
# database doesn't surface as a failed provisioning call.
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
)

# Transactions are committed explicitly by the ledger service
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """
    FastAPI dependency that provides a database session.

    Usage in a route:
        @router.post("/create-meet")
        async def create_meet(db: Session = Depends(get_db)):
            ...

    The session is always closed after the request, even when the
    route raises.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
