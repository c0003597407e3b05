"""
Demo script: route one request and stream the answer to stdout.

Usage: python -m prompt_matrix.demo "帮我优化这个提示词..."
"""

import sys

from .models import StreamEventType
from .utils import setup_logging, get_logger, ConfigManager, CustomProviderStore, is_configured
from .utils.error_handling import PromptMatrixError
from .core import CentralRouter, CompletionClient


def main(argv=None):
    """Route the text given on the command line and print the streamed answer."""
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print('Usage: python -m prompt_matrix.demo "<text>"', file=sys.stderr)
        return 2

    config_manager = ConfigManager()
    config = config_manager.load_config()

    setup_logging(config.logging_config, debug=config.debug_mode)
    logger = get_logger(__name__)

    logger.info("Prompt Matrix demo starting")

    if not is_configured(config.provider_config):
        print("No API key configured. Set PROMPT_MATRIX_API_KEY or edit config.json.", file=sys.stderr)
        return 1

    client = CompletionClient(CustomProviderStore(config.custom_providers_path))
    client.initialize(config.provider_config)
    router = CentralRouter(client, router_config=config.router_config, prompt_dir=config.prompt_dir)

    user_input = " ".join(argv)
    try:
        for event in router.handle_request_stream(user_input):
            if event.type == StreamEventType.THINKING:
                print(event.text, file=sys.stderr)
            elif event.type == StreamEventType.CONTENT:
                print(event.text, end="", flush=True)
            else:
                response = event.response
                print()
                print("-" * 50)
                print(f"Agent: {router.get_agent_name(response.agent_type)} ({response.intent.value})")
    except PromptMatrixError as e:
        logger.error(f"Demo failed: {e}")
        print(f"\nError: {e}", file=sys.stderr)
        return 1

    logger.info("Demo completed successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
