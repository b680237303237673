from jobcard_api.db.seed import SEED_MARKER, seed_all
from jobcard_api.services.materials import MaterialLedgerService
from jobcard_api.services.plans import PlanService


async def test_seed_is_idempotent(session_maker, session, ctx):
    plan = await seed_all(session_maker)
    assert plan is not None
    assert await seed_all(session_maker) is None

    plans = await PlanService(session, **ctx).list_plans()
    assert [p.note for p in plans] == [SEED_MARKER]
    assert plans[0].urgent is True

    requests = await MaterialLedgerService(session, **ctx).list_requests(plan_id=plan.id)
    assert [r.requested_quantity for r in requests] == [40]
