from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ledger_helpers import seed_tenant
from lotledger.core.security_current import ROLE_ADMIN, ROLE_AGENT, Actor
from lotledger.db.base import Base
from lotledger.services.balance_service import get_balance
from lotledger.services.category_service import create_category
from lotledger.services.inbound_service import AttachmentRef, approve_inbound, create_inbound
from lotledger.services.movement_store import get_inbound

ADMIN = Actor(role=ROLE_ADMIN, id="admin")
AGENT = Actor(role=ROLE_AGENT, id="agent")


def test_second_approver_with_stale_row_books_nothing(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(bind=engine)
    session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    tenant_id = seed_tenant(session_local)

    with session_local() as db:
        category = create_category(db, actor=ADMIN, tenant_id=tenant_id, code="ZNC", name="Zinc")
        movement = create_inbound(
            db,
            actor=AGENT,
            tenant_id=tenant_id,
            values={"category_id": category.id, "batch_no": "B1", "actual_qty": 100, "actual_weight": 5},
            attachment=AttachmentRef(storage_key="images/truck.jpg"),
        )
        db.commit()
        category_id, inbound_id = category.id, movement.id

    first = session_local()
    second = session_local()
    try:
        # The second approver has already read the row while it was pending.
        stale = get_inbound(second, tenant_id=tenant_id, inbound_id=inbound_id)
        assert stale.status == "pending_review"

        won = approve_inbound(first, actor=ADMIN, tenant_id=tenant_id, inbound_id=inbound_id)
        first.commit()
        assert won.already is False

        lost = approve_inbound(second, actor=ADMIN, tenant_id=tenant_id, inbound_id=inbound_id)
        second.commit()
        assert lost.approved is True
        assert lost.already is True
    finally:
        first.close()
        second.close()

    with session_local() as db:
        rows = get_balance(db, tenant_id=tenant_id, category_id=category_id, batch_no="B1")
        assert [(row.available_qty, float(row.available_weight)) for row in rows] == [(100, 5.0)]

    Base.metadata.drop_all(bind=engine)
    engine.dispose()
