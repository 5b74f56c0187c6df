import asyncio

from style_analysis_client.errors import StyleClientError, WorkflowTimeoutError
from style_analysis_client.issues import get_issue_counts
from style_analysis_client.models import (
    AnalysisRequest,
    ClientConfig,
    GuidanceSettings,
    StatusPollingConfig,
    Tone,
)
from style_analysis_client.style_analysis_client import StyleAnalysisClient
from style_server import StyleServer


async def status_changed(status_response):
    print(f"Status changed to: {status_response.status}")
    print(f"Elapsed time: {status_response.elapsed_time:.6f}s")


async def main():
    server = StyleServer(pending_polls=3, api_key="demo-key")
    port = await server.start()
    print(f"Server started on http://127.0.0.1:{port}")

    config = ClientConfig(
        platform_url=f"http://127.0.0.1:{port}",
        api_key="demo-key",
        polling=StatusPollingConfig(poll_interval=0.5, max_attempts=10),
    )
    request = AnalysisRequest(
        content="We utilize alot of words.",
        guidance=GuidanceSettings(tone=Tone.business, style_guide="microsoft"),
    )

    async with StyleAnalysisClient(config, on_status_change=status_changed) as client:
        try:
            print(f"Token valid: {await client.validate_token()}")
            print(f"Rewrite: {await client.rewrite(request)}")

            suggestions = await client.style_suggestions(request)
            print(f"Overall score: {suggestions.scores.overall_score}")
            for category, count in get_issue_counts(suggestions.issues).items():
                if count:
                    print(f"  {category.value}: {count}")
        except WorkflowTimeoutError as e:
            print(f"Polling timed out: {e}")
        except StyleClientError as e:
            print(f"Error occurred: {e}")

    await server.stop()


if __name__ == "__main__":
    asyncio.run(main())
