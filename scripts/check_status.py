import asyncio
import os
import sys

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dotenv import load_dotenv

load_dotenv()

from app.core.config import settings
from app.modules.catalog.normalize import normalize_folder
from app.modules.origin.client import OriginClient, unwrap_list

async def main():
    """
    Prints every origin folder with the video count the origin reports for it.
    """
    client = OriginClient(settings.ORIGIN_API_BASE, settings.ORIGIN_API_TOKEN, timeout=settings.ORIGIN_TIMEOUT_SECONDS)
    try:
        folders = [normalize_folder(f) for f in unwrap_list(await client.list_folders())]
    finally:
        await client.aclose()

    print("Total folders:", len(folders))
    total_videos = 0
    for folder in folders:
        count = folder.video_count or 0
        print(f"- {folder.name}: {count} videos")
        total_videos += count
    print("\nTotal videos across all folders:", total_videos)

if __name__ == "__main__":
    asyncio.run(main())
