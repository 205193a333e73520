from typing import Any, List
from fastapi import APIRouter, Depends
import logging

from app.gesture_engine.core.capture import CaptureState
from app.gesture_engine.core.data_types import JointType
from app.gesture_engine.core.exceptions import GestureEngineError
from app.helpers.exception_handler import CustomException
from app.schemas.sche_base import DataResponse
from app.schemas.sche_gesture import (
    CaptureEndRequest, CaptureResponse, FrameRequest, FrameResponse, JointStatusResponse,
    LoadReportResponse, MatchResultResponse, MatchStatusResponse, MeasurementUnitsRequest,
    SaveCaptureRequest, SkeletonsRequest, TemplateCreateRequest, TemplateListResponse,
    TemplateLoadRequest, TemplateResponse,
)
from app.services.srv_gesture import GestureSessionService, get_gesture_service

router = APIRouter()

logger = logging.getLogger(__name__)


def _to_custom_exception(name: str, e: Exception) -> CustomException:
    if isinstance(e, GestureEngineError):
        logger.warning(f"{name} rejected: {str(e)}")
        return CustomException.from_engine_error(e)
    logger.error(f"{name} error: {str(e)}", exc_info=True)
    return CustomException(http_code=400, code='400', message=str(e))


def _frame_response(service: GestureSessionService, snapshot) -> FrameResponse:
    return FrameResponse(
        capturing=service.capture_state == CaptureState.CAPTURING,
        capture_frames=service.capture_frame_count,
        joints=[JointStatusResponse.from_view(view) for view in snapshot.values()] if snapshot else []
    )


# ==================== TEMPLATES ====================

@router.get('/templates', response_model=DataResponse[TemplateListResponse])
def list_templates(
    service: GestureSessionService = Depends(get_gesture_service)
) -> Any:
    """
    List every template in the gesture database, in load order.

    **Response**: Templates with label and frame count, plus min/max template length.
    """
    recognizer = service.recognizer
    data = TemplateListResponse(
        templates=[TemplateResponse.from_template(t) for t in service.templates()],
        labels=[label.value for label in recognizer.labels()],
        gesture_min_len=recognizer.gesture_min_len,
        gesture_max_len=recognizer.gesture_max_len
    )
    return DataResponse().success_response(data=data)


@router.post('/templates', response_model=DataResponse[TemplateResponse])
def add_template(
    request: TemplateCreateRequest,
    service: GestureSessionService = Depends(get_gesture_service)
) -> Any:
    """
    Add a template from a sequence of frames.

    **Process**:
    1. Validate label, frames and joint weights
    2. Add to the in-memory database (optionally write it to the template directory)
    """
    try:
        logger.info(f"add_template request: label={request.label}, frames={len(request.frames)}")
        template = service.add_template(request.label, request.to_sequence(), request.weights, request.persist)
        logger.info(f"add_template success: template_id={template.template_id}")
        return DataResponse().success_response(data=TemplateResponse.from_template(template))
    except (GestureEngineError, ValueError) as e:
        raise _to_custom_exception("add_template", e)


@router.post('/templates/load', response_model=DataResponse[LoadReportResponse])
def load_templates(
    request: TemplateLoadRequest,
    service: GestureSessionService = Depends(get_gesture_service)
) -> Any:
    """
    Load templates from TEMPLATE_DIR or a directory inside it (one sub-directory per gesture).

    Corrupt entries are skipped and reported; a path outside TEMPLATE_DIR returns 400,
    a missing directory returns 503.
    """
    try:
        logger.info(f"load_templates request: path={request.path}")
        report = service.load_templates(request.path)
        logger.info(f"load_templates success: loaded={report.loaded}, skipped={report.skipped}")
        return DataResponse().success_response(data=LoadReportResponse.from_report(report))
    except GestureEngineError as e:
        raise _to_custom_exception("load_templates", e)


@router.delete('/templates/label/{label}', response_model=DataResponse[int])
def remove_templates_by_label(
    label: str,
    service: GestureSessionService = Depends(get_gesture_service)
) -> Any:
    """Remove every template of a gesture. Returns the number removed."""
    try:
        logger.info(f"remove_templates_by_label request: {label}")
        removed = service.remove_template(label)
        return DataResponse().success_response(data=removed)
    except GestureEngineError as e:
        raise _to_custom_exception("remove_templates_by_label", e)


@router.delete('/templates/{template_id}', response_model=DataResponse[TemplateResponse])
def remove_template(
    template_id: str,
    service: GestureSessionService = Depends(get_gesture_service)
) -> Any:
    """Remove a single template by id."""
    try:
        logger.info(f"remove_template request: {template_id}")
        template = service.remove_template_by_id(template_id)
        return DataResponse().success_response(data=TemplateResponse.from_template(template))
    except GestureEngineError as e:
        raise _to_custom_exception("remove_template", e)


# ==================== CAPTURE ====================

@router.post('/capture/begin', response_model=DataResponse[CaptureResponse])
def begin_capture(
    service: GestureSessionService = Depends(get_gesture_service)
) -> Any:
    """Start buffering frames for recognition."""
    try:
        service.begin_capture()
        return DataResponse().success_response(data=CaptureResponse(state=service.capture_state.value))
    except GestureEngineError as e:
        raise _to_custom_exception("begin_capture", e)


@router.post('/capture/end', response_model=DataResponse[CaptureResponse])
def end_capture(
    request: CaptureEndRequest,
    service: GestureSessionService = Depends(get_gesture_service)
) -> Any:
    """
    Stop capturing and schedule recognition of the captured frames.

    **Process**:
    1. Trim the buffer to [start_frame, end_frame] if given
    2. Submit the sequence to the background matcher (409 if a match is still running)

    **Response**: Captured frame count; poll `/match/latest` for the result.
    """
    try:
        sequence = service.end_capture(request.start_frame, request.end_frame)
        data = CaptureResponse(
            state=service.capture_state.value,
            frame_count=len(sequence),
            match_scheduled=bool(sequence)
        )
        return DataResponse().success_response(data=data)
    except GestureEngineError as e:
        raise _to_custom_exception("end_capture", e)


@router.post('/capture/abort', response_model=DataResponse[CaptureResponse])
def abort_capture(
    service: GestureSessionService = Depends(get_gesture_service)
) -> Any:
    """Discard the current capture without matching."""
    discarded = service.abort_capture()
    return DataResponse().success_response(
        data=CaptureResponse(state=service.capture_state.value, frame_count=discarded)
    )


@router.post('/capture/save', response_model=DataResponse[TemplateResponse])
def save_capture(
    request: SaveCaptureRequest,
    service: GestureSessionService = Depends(get_gesture_service)
) -> Any:
    """Save the last captured sequence as a template of the given gesture."""
    try:
        logger.info(f"save_capture request: label={request.label}")
        template = service.save_capture_as_template(request.label, request.weights, request.persist)
        return DataResponse().success_response(data=TemplateResponse.from_template(template))
    except (GestureEngineError, ValueError) as e:
        raise _to_custom_exception("save_capture", e)


# ==================== STREAMING ====================

@router.post('/frames', response_model=DataResponse[FrameResponse])
def submit_frame(
    request: FrameRequest,
    service: GestureSessionService = Depends(get_gesture_service)
) -> Any:
    """Submit one skeleton frame. Returns the joint snapshot for the selected measurement units."""
    try:
        snapshot = service.submit_frame(request.to_pose(), request.timestamp)
        return DataResponse().success_response(data=_frame_response(service, snapshot))
    except (GestureEngineError, ValueError) as e:
        raise _to_custom_exception("submit_frame", e)


@router.post('/skeletons', response_model=DataResponse[FrameResponse])
def submit_skeletons(
    request: SkeletonsRequest,
    service: GestureSessionService = Depends(get_gesture_service)
) -> Any:
    """Submit every skeleton of a sensor frame; the first tracked one is used."""
    try:
        snapshot = service.submit_skeletons(request.to_skeletons(), request.timestamp)
        return DataResponse().success_response(data=_frame_response(service, snapshot))
    except (GestureEngineError, ValueError) as e:
        raise _to_custom_exception("submit_skeletons", e)


@router.get('/joints', response_model=DataResponse[List[JointStatusResponse]])
def get_joint_status(
    service: GestureSessionService = Depends(get_gesture_service)
) -> Any:
    """Current joint snapshot, filtered by the selected measurement units."""
    snapshot = service.snapshot()
    return DataResponse().success_response(data=[JointStatusResponse.from_view(v) for v in snapshot.values()])


@router.put('/measurement-units', response_model=DataResponse[int])
def set_measurement_units(
    request: MeasurementUnitsRequest,
    service: GestureSessionService = Depends(get_gesture_service)
) -> Any:
    """Replace the selected measurement units. An empty list clears the snapshot."""
    try:
        units = [unit.to_unit() for unit in request.units]
        service.set_measurement_units(units)
        return DataResponse().success_response(data=len(units))
    except ValueError as e:
        raise _to_custom_exception("set_measurement_units", e)


@router.post('/joints/{joint}/speed-export', response_model=DataResponse[str])
def export_speed_series(
    joint: str,
    service: GestureSessionService = Depends(get_gesture_service)
) -> Any:
    """Write the recent speed series of a joint to the session log directory."""
    try:
        path = service.export_speed_series(JointType.from_string(joint))
        return DataResponse().success_response(data=path)
    except (GestureEngineError, ValueError) as e:
        raise _to_custom_exception("export_speed_series", e)


# ==================== MATCH ====================

@router.get('/match/latest', response_model=DataResponse[MatchStatusResponse])
def get_latest_match(
    service: GestureSessionService = Depends(get_gesture_service)
) -> Any:
    """Latest recognition result (or error) and whether a match is still running."""
    outcome = service.latest_match
    data = MatchStatusResponse(busy=service.match_in_flight)
    if outcome is not None:
        if outcome.ok:
            data.result = MatchResultResponse.from_result(outcome.result)
        else:
            data.error = str(outcome.error)
    return DataResponse().success_response(data=data)
