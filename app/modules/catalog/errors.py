class RefreshInProgress(Exception):
    def __init__(self):
        super().__init__("Refresh already in progress")


class VideoNotFound(Exception):
    def __init__(self, video_id: str):
        super().__init__(f"video {video_id} not found")
        self.video_id = video_id


class AssetPathUnresolvable(Exception):
    """The poster URL did not match the `<base>/<asset dir>/<file>` layout."""

    def __init__(self, video_id: str | None, url: str | None):
        super().__init__(f"cannot derive asset path for video {video_id} from {url!r}")
        self.video_id = video_id
        self.url = url


class AllFoldersFailed(Exception):
    """The folder list came back but no folder yielded a single video."""

    def __init__(self, failures: int):
        super().__init__(f"all {failures} folders failed; keeping the previous catalog")
        self.failures = failures
