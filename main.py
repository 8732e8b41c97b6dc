
# entrypoint: run with `uvicorn main:app --reload`
from app.core.settings import settings
from app.factory import create_app

app = create_app()

if __name__ == "__main__":
    import uvicorn  # nosec - dev server
    uvicorn.run("main:app", host=settings.HOST, port=settings.PORT, reload=True)
