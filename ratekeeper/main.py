import uvicorn

from ratekeeper.core.app_factory import create_app

app = create_app()


def serve() -> None:
    """Run the API with a single Uvicorn worker.

    Counters are per process, so one worker keeps quotas exact.
    """
    # log_config=None keeps the handlers installed by configure_logging
    uvicorn.run("ratekeeper.main:app", host="0.0.0.0", port=8000, workers=1, log_config=None)
