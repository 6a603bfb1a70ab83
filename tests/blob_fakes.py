"""In-memory stand-ins for Azure blob container clients."""


class FakeBlobClient:
    def __init__(self, store: dict[str, str], name: str) -> None:
        self._store = store
        self.blob_name = name
        self.url = f"https://acct.blob.core.windows.net/claude-transcripts/{name}"

    def upload_blob(self, data, overwrite: bool = False, content_settings=None) -> dict:
        if not overwrite and self.blob_name in self._store:
            raise RuntimeError("BlobAlreadyExists")
        self._store[self.blob_name] = data
        return {}


class FakeContainerClient:
    def __init__(self, exists: bool = True) -> None:
        self.blobs: dict[str, str] = {}
        self._exists = exists
        self.created = False

    def exists(self) -> bool:
        return self._exists

    def create_container(self) -> None:
        self.created = True
        self._exists = True

    def get_blob_client(self, blob: str) -> FakeBlobClient:
        return FakeBlobClient(self.blobs, blob)
