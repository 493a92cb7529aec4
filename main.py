import uvicorn

from subs_wrapper.settings import settings

if __name__ == "__main__":
    uvicorn.run("subs_wrapper.app:app", host="0.0.0.0", port=settings.port)
