"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from app.schemas import (
    DiveAccepted,
    DiveListResponse,
    ReceiverStatus,
    StreamName,
    TimelinePointResponse,
    TracePoint,
    TraceResponse,
)
from models.records import DiveSummary, Sample, SortMode
from services.densify import trace_depth, trace_stream
from services.receiver import DiveReceiver, build_default_receiver
from services.reconciler import available_locations, deduped_sorted, filtered_dives
from services.timeline import timeline_at, timeline_duration

router = APIRouter()

_DEFAULT_STEPS = {
    StreamName.depth: 5.0,
    StreamName.heart_rate: 2.0,
    StreamName.water_temperature: 2.0,
}


def get_receiver() -> DiveReceiver:
    return build_default_receiver()


def _fetch(receiver: DiveReceiver, dive_id: UUID) -> DiveSummary:
    try:
        return receiver.fetch_dive(dive_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


def _trace_points(samples: List[Sample]) -> List[TracePoint]:
    return [TracePoint(seconds=sample.seconds, value=sample.value) for sample in samples]


@router.post(
    "/dives",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=DiveAccepted,
    summary="Receive a dive summary from a recorder.",
)
async def receive_dive(
    payload: Dict[str, Any] = Body(..., description="Dive summary in wire format."),
    receiver: DiveReceiver = Depends(get_receiver),
) -> DiveAccepted:
    summary = receiver.handle_payload(payload)
    if summary is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=receiver.status_message,
        )
    return DiveAccepted(id=str(summary.id), status_message=receiver.status_message)


@router.get(
    "/dives",
    response_model=DiveListResponse,
    summary="List known dives.",
)
async def list_dives(
    sort: SortMode = Query(SortMode.date_desc),
    location: Optional[str] = Query(None, description="Only dives in this city."),
    min_duration: float = Query(0.0, ge=0),
    receiver: DiveReceiver = Depends(get_receiver),
) -> DiveListResponse:
    dives = deduped_sorted(receiver.reconciler.history(), sort)
    selected = filtered_dives(dives, location=location, min_duration=min_duration)
    return DiveListResponse(
        dives=[dive.to_payload() for dive in selected],
        available_locations=available_locations(dives),
    )


@router.get(
    "/dives/{dive_id}",
    summary="Fetch one dive in wire format.",
)
async def get_dive(
    dive_id: UUID,
    receiver: DiveReceiver = Depends(get_receiver),
) -> Dict[str, Any]:
    return _fetch(receiver, dive_id).to_payload()


@router.get(
    "/dives/{dive_id}/timeline",
    response_model=TimelinePointResponse,
    summary="Read every stream at one point of the dive.",
)
async def get_timeline_point(
    dive_id: UUID,
    at: float = Query(..., allow_inf_nan=False, description="Seconds from the start of the dive."),
    receiver: DiveReceiver = Depends(get_receiver),
) -> TimelinePointResponse:
    summary = _fetch(receiver, dive_id)
    point = timeline_at(summary, at)
    return TimelinePointResponse(
        seconds=point.seconds,
        duration_seconds=timeline_duration(summary),
        depth_meters=point.depth_meters,
        heart_rate=point.heart_rate,
        water_temperature_celsius=point.water_temperature_celsius,
    )


@router.get(
    "/dives/{dive_id}/traces/{stream}",
    response_model=TraceResponse,
    summary="Regularly spaced trace of one stream for rendering.",
)
async def get_trace(
    dive_id: UUID,
    stream: StreamName,
    step: Optional[float] = Query(
        None, gt=0, allow_inf_nan=False, description="Seconds between points."
    ),
    receiver: DiveReceiver = Depends(get_receiver),
) -> TraceResponse:
    summary = _fetch(receiver, dive_id)
    step_seconds = step if step is not None else _DEFAULT_STEPS[stream]

    try:
        if stream is StreamName.depth:
            samples: List[Sample] = list(trace_depth(summary, step_seconds))
        elif stream is StreamName.heart_rate:
            samples = list(
                trace_stream(summary.heart_rate_samples, timeline_duration(summary), step_seconds)
            )
        else:
            samples = list(
                trace_stream(summary.water_temp_samples, timeline_duration(summary), step_seconds)
            )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    return TraceResponse(stream=stream, step_seconds=step_seconds, points=_trace_points(samples))


@router.get(
    "/status",
    response_model=ReceiverStatus,
    summary="Latest receiver status message.",
)
async def get_status(receiver: DiveReceiver = Depends(get_receiver)) -> ReceiverStatus:
    latest = receiver.last_dive
    return ReceiverStatus(
        status_message=receiver.status_message,
        weather_error=receiver.weather_error,
        history_size=len(receiver.reconciler),
        last_dive_id=str(latest.id) if latest is not None else None,
    )


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
