from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from ..auth import require_operator
from ..context import AppContext
from ..deps import get_context
from ..schemas import OverdueTaskOut, SweepSummaryOut
from ..sweep import run_overdue_sweep

router = APIRouter(
    prefix="/api/v1/sweeps",
    tags=["sweeps"],
    dependencies=[Depends(require_operator)],
)


# PUBLIC_INTERFACE
@router.post(
    "/overdue",
    response_model=SweepSummaryOut,
    summary="Run Overdue Sweep",
    description=(
        "Run one overdue-task notification sweep now and return its summary. "
        "Overdue tasks are notified again on every run."
    ),
    responses={
        200: {"description": "Sweep completed"},
        503: {"description": "Sweep aborted: task store unreadable or malformed data in strict mode"},
    },
)
async def trigger_overdue_sweep(context: AppContext = Depends(get_context)):
    try:
        result = await run_in_threadpool(run_overdue_sweep, context)
    except Exception as exc:
        # Already logged with traceback by the sweep
        return JSONResponse(
            status_code=503,
            content={"error": type(exc).__name__, "message": str(exc)},
        )

    return SweepSummaryOut(
        success=result.success,
        overdue_tasks=[
            OverdueTaskOut(
                id=t.id,
                title=t.title,
                description=t.description,
                due_date=t.due_date,
                owner_id=t.owner_id,
            )
            for t in result.overdue_tasks
        ],
        emails_sent=result.emails_sent,
    )
