"""
FastAPI service for the lens designer front end.
Accepts surface tables as JSON, runs the ray tracer / MTF / optimizer and
returns plain JSON (the optimizer streams NDJSON progress lines).
"""

import json
import logging
from typing import Any, List

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from lensopt.config import CORS_ORIGINS, DEFAULT_HOST, DEFAULT_PORT, LOG_LEVEL
from lensopt.materials import get_all_materials
from lensopt.merit import calculate_merit
from lensopt.optimizer import CancelToken, aiter_optimize
from lensopt.presets import default_lens
from lensopt.prescription import surfaces_from_payload, to_prescription_json
from lensopt.raytracer import calculate_mtf, ray_fan, trace_ray
from lensopt.schemas import (
    MeritRequest,
    MTFRequest,
    OptimizeRequest,
    PrescriptionExportRequest,
    RayFanRequest,
    SurfaceSchema,
    TraceRequest,
    lens_system_from_schemas,
    mtf_point_to_dict,
    path_to_dict,
    ray_from_schema,
    surfaces_to_dicts,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Lens Optimizer API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _system_or_400(surfaces: List[SurfaceSchema]):
    try:
        return lens_system_from_schemas(surfaces)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/health")
def health():
    return {"status": "ok"}


@app.get("/api/lens/default")
def get_default_lens():
    """Starting doublet shown when the app opens."""
    return {"surfaces": surfaces_to_dicts(default_lens())}


@app.get("/api/materials")
def get_materials():
    """Glass catalog (name, d-line index)."""
    return get_all_materials()


@app.post("/api/trace")
def trace(req: TraceRequest):
    """Trace one ray. Returns {points: [{x,y,z}, ...], color, complete}."""
    system = _system_or_400(req.surfaces)
    try:
        ray = ray_from_schema(req.ray)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return path_to_dict(trace_ray(ray, system))


@app.post("/api/ray-fan")
def get_ray_fan(req: RayFanRequest):
    """Meridional ray fans for the layout view, one path per ray."""
    system = _system_or_400(req.surfaces)
    try:
        paths = ray_fan(system, req.fieldAngles, req.wavelengths, req.raysPerFan)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return [path_to_dict(p) for p in paths]


@app.post("/api/mtf")
def get_mtf(req: MTFRequest):
    """
    Geometric MTF curves, one per field angle.
    Returns [{fieldAngle, points: [{frequency, tangential, sagittal, fieldAngle}, ...]}, ...]
    """
    system = _system_or_400(req.surfaces)
    try:
        curves = [(angle, calculate_mtf(system, angle, req.maxFreq)) for angle in req.fieldAngles]
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return [
        {"fieldAngle": angle, "points": [mtf_point_to_dict(p) for p in curve]}
        for angle, curve in curves
    ]


@app.post("/api/merit")
def get_merit(req: MeritRequest):
    system = _system_or_400(req.surfaces)
    try:
        score = calculate_merit(system, req.targetFrequency)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"score": score, "targetFrequency": req.targetFrequency}


@app.post("/api/optimize")
async def optimize_lens(req: OptimizeRequest, request: Request):
    """
    Hill-climb the variable radii. Streams application/x-ndjson:
      {"type": "progress", "iteration", "score", "surfaces"}   one per pass
      {"type": "result", "iterations", "score", "cancelled", "surfaces"}
    A client disconnect cancels the run at the next pass boundary.
    """
    system = _system_or_400(req.surfaces)
    if req.maxIterations < 0:
        raise HTTPException(status_code=400, detail="maxIterations must be >= 0")
    if not req.delta > 0:
        raise HTTPException(status_code=400, detail="delta must be > 0")
    try:
        initial_score = calculate_merit(system, req.targetFrequency)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    cancel = CancelToken()
    logger.info("Optimize request: %d surfaces, initial merit %.6f", len(system), initial_score)

    async def stream():
        result, score, passes = system, initial_score, 0
        async for step in aiter_optimize(system, req.targetFrequency, req.maxIterations,
                                         delta=req.delta, cancel=cancel):
            result, score, passes = step.surfaces, step.score, step.iteration + 1
            yield json.dumps({
                "type": "progress",
                "iteration": step.iteration,
                "score": step.score,
                "surfaces": surfaces_to_dicts(step.surfaces),
            }) + "\n"
            if await request.is_disconnected():
                logger.info("Client disconnected; cancelling optimization")
                cancel.cancel()
        yield json.dumps({
            "type": "result",
            "iterations": passes,
            "score": score,
            "cancelled": cancel.cancelled,
            "surfaces": surfaces_to_dicts(result),
        }) + "\n"

    return StreamingResponse(stream(), media_type="application/x-ndjson")


@app.post("/api/prescription/import")
def import_prescription(payload: Any = Body(...)):
    """
    Normalize a surface table: a list of surfaces, {"surfaces": [...]}, or an
    exported prescription document. Returns {surfaces: [...]}.
    """
    try:
        system = surfaces_from_payload(payload)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"surfaces": surfaces_to_dicts(system)}


@app.post("/api/prescription/export")
def export_prescription(req: PrescriptionExportRequest):
    system = _system_or_400(req.surfaces)
    return to_prescription_json(system, project_name=req.projectName or "Untitled", date_str=req.date)


def main():
    """Run the API with uvicorn (LENSOPT_HOST / LENSOPT_PORT / LOG_LEVEL)."""
    import uvicorn

    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    uvicorn.run(app, host=DEFAULT_HOST, port=DEFAULT_PORT, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
