import asyncio
import os
import sys

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dotenv import load_dotenv

load_dotenv()

from app.core.config import settings
from app.core.logging import setup_logging
from app.platform.provider_registry import ProviderRegistry

async def main():
    """
    Runs one full catalog crawl and writes it through to the shared cache tier,
    so freshly started API processes can rehydrate without crawling the origin.
    """
    if settings.CACHE_PROVIDER != "redis":
        print("Warning: CACHE_PROVIDER is not 'redis'; the snapshot will only live in this process.")

    registry = ProviderRegistry.from_settings(settings)
    if registry.redis:
        await registry.redis.connect()
    try:
        result = await registry.scheduler.trigger()
        print(result.message)
        for folder_id in result.failed_folders:
            print(f"  - folder {folder_id} incomplete")
        return 0 if result.success else 1
    finally:
        await registry.close()

if __name__ == "__main__":
    setup_logging(settings)
    sys.exit(asyncio.run(main()))
