from fastapi import Depends, FastAPI, File, Query, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from typing import Any, Dict, List, Optional

from normaize.config import settings
from normaize.core.visualization import generate_plotly_json
from normaize.models import (
    ChartConfiguration,
    ChartDataset,
    ChartType,
    ComparisonChart,
    DataSummary,
    Dataset,
    DatasetPreview,
    StatisticalSummary,
)
from normaize.services import DatasetService
from normaize.utils.exceptions import AppException
from normaize.utils.logger import get_logger

logger = get_logger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs"
)

# --- In-Memory Dataset Service ---
_service = DatasetService()


def get_service() -> DatasetService:
    return _service


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    logger.warning(f"{request.method} {request.url.path} failed ({exc.status_code}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "online", "message": f"{settings.APP_NAME} API is running"}


@app.get("/chart-types")
async def chart_types() -> List[str]:
    return [t.value for t in ChartType]


@app.post("/datasets", response_model=Dataset)
async def upload_dataset(
    file: UploadFile = File(...),
    service: DatasetService = Depends(get_service),
):
    """
    Uploads a file, ingests it, and registers the resulting dataset.
    Malformed content still yields a dataset with isProcessed=false.
    """
    logger.info(f"Received file upload: {file.filename}")
    content = await file.read()
    return await run_in_threadpool(service.upload, content, file.filename or "")


@app.get("/datasets", response_model=List[Dataset])
def list_datasets(service: DatasetService = Depends(get_service)):
    return service.list()


@app.get("/datasets/{dataset_id}", response_model=Dataset)
def get_dataset(dataset_id: str, service: DatasetService = Depends(get_service)):
    return service.get(dataset_id)


@app.delete("/datasets/{dataset_id}")
def delete_dataset(dataset_id: str, service: DatasetService = Depends(get_service)):
    service.delete(dataset_id)
    return {"message": f"Dataset {dataset_id} deleted."}


@app.post("/datasets/{dataset_id}/reprocess", response_model=Dataset)
def reprocess_dataset(dataset_id: str, service: DatasetService = Depends(get_service)):
    return service.reprocess(dataset_id)


@app.get("/datasets/{dataset_id}/schema")
def dataset_schema(dataset_id: str, service: DatasetService = Depends(get_service)) -> List[str]:
    return service.schema(dataset_id)


@app.get("/datasets/{dataset_id}/preview", response_model=Optional[DatasetPreview])
def dataset_preview(
    dataset_id: str,
    rows: int = Query(default=settings.MAX_PREVIEW_ROWS),
    service: DatasetService = Depends(get_service),
):
    """Leading rows of the dataset; null when it has no preview."""
    return service.preview(dataset_id, rows)


@app.get("/datasets/{dataset_id}/summary", response_model=DataSummary)
def dataset_summary(dataset_id: str, service: DatasetService = Depends(get_service)):
    return service.summary(dataset_id)


@app.get("/datasets/{dataset_id}/statistics", response_model=StatisticalSummary)
def dataset_statistics(dataset_id: str, service: DatasetService = Depends(get_service)):
    return service.statistics(dataset_id)


@app.post("/datasets/{dataset_id}/charts/{chart_type}", response_model=ChartDataset)
def dataset_chart(
    dataset_id: str,
    chart_type: ChartType,
    configuration: Optional[ChartConfiguration] = None,
    service: DatasetService = Depends(get_service),
):
    return service.chart(dataset_id, chart_type, configuration)


@app.post("/datasets/{dataset_id}/charts/{chart_type}/plotly")
def dataset_chart_plotly(
    dataset_id: str,
    chart_type: ChartType,
    configuration: Optional[ChartConfiguration] = None,
    service: DatasetService = Depends(get_service),
) -> Dict[str, Any]:
    """Chart rendered as a Plotly figure JSON string (null when nothing to draw)."""
    chart = service.chart(dataset_id, chart_type, configuration)
    return {"chartType": chart.chart_type.value, "figure": generate_plotly_json(chart)}


@app.post(
    "/datasets/{dataset_id1}/compare/{dataset_id2}/charts/{chart_type}",
    response_model=ComparisonChart,
)
def compare_dataset_charts(
    dataset_id1: str,
    dataset_id2: str,
    chart_type: ChartType,
    configuration: Optional[ChartConfiguration] = None,
    service: DatasetService = Depends(get_service),
):
    """Series of both datasets on one chart, labels from the first."""
    return service.compare_charts(dataset_id1, dataset_id2, chart_type, configuration)
