import argparse
import logging

logging.getLogger().handlers.clear()
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
)


def _process() -> None:
    from funnels.engine import get_funnel_engine

    report = get_funnel_engine().process_executions()
    logging.info(
        "Processed %d due executions (completed=%d, suspended=%d, failed=%d)",
        report.due,
        report.completed,
        report.suspended,
        report.failed,
    )


def _serve(host: str, port: int) -> None:
    import uvicorn

    from api_server.main import app

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Funnel engine")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("process", help="Run one processing pass over due executions and exit")

    serve = subparsers.add_parser("serve", help="Run the API server with the background worker")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()
    if args.command == "process":
        _process()
    else:
        _serve(args.host, args.port)
