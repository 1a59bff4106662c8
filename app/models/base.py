import time
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def now_ms() -> int:
    """Epoch milliseconds, the timestamp format stored on every document."""
    return int(time.time() * 1000)


class Document(BaseModel):
    """Firestore documents store camelCase keys; Python code uses snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self, exclude=None) -> dict:
        return self.model_dump(by_alias=True, exclude=exclude, mode="json")
