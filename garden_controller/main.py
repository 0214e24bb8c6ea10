import logging

import uvicorn
from fastapi import FastAPI

from garden_controller.api import cloudprofiles, seeds, shoots
from garden_controller.config import settings

logging.basicConfig(level=settings.log_level)

app = FastAPI(title="Garden Controller API")

app.include_router(shoots.router)
app.include_router(seeds.router)
app.include_router(cloudprofiles.router)


@app.get("/")
def root():
    return {"status": "controller up"}


if __name__ == "__main__":
    uvicorn.run("garden_controller.main:app", host="0.0.0.0", port=8001, log_level="info")
