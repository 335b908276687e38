from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response

router = APIRouter()

# Metrics Definitions
JOBS_CREATED = Counter('jobs_created_total', 'Total jobs created', ['kind'])
JOBS_COMPLETED = Counter('jobs_completed_total', 'Total jobs reaching a terminal state', ['kind', 'status'])
JOBS_PENDING = Gauge('jobs_pending', 'Number of jobs in PENDING state')

JOB_DURATION = Histogram(
    'job_duration_seconds',
    'Time from job creation to completion',
    ['kind'],
    buckets=[0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 600.0]
)

COMPLETION_RETRIES = Counter(
    "completion_retries_total",
    "Total number of completion calls retried after a rate-limit response"
)

JOBS_EVICTED = Counter(
    "jobs_evicted_total",
    "Total number of terminal jobs removed by the retention sweeper"
)

@router.get("/metrics")
async def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
