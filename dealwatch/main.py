# dealwatch/main.py
from fastapi import FastAPI
from dealwatch.db import Base, engine
from dealwatch.analyzer import ListingListAnalyzer
from dealwatch.api.routes import router as api_router
from dealwatch.config import load_config
from dealwatch.highlight import SoupHighlightSink
from dealwatch.risk import SingleListingRiskProfile
from dealwatch.utils import logger
import dealwatch.models  # noqa: F401 ensure models are imported so tables are known


def create_app(config=None) -> FastAPI:
    config = config or load_config()
    app = FastAPI(title="dealwatch")
    app.state.analyzer = ListingListAnalyzer(config, sink=SoupHighlightSink(config.highlight_colors))
    app.state.risk_profile = SingleListingRiskProfile()
    app.include_router(api_router)

    @app.on_event("startup")
    def on_startup_create_tables():
        Base.metadata.create_all(bind=engine)
        logger.info("dealwatch API ready")

    @app.on_event("shutdown")
    def on_shutdown():
        app.state.analyzer.dispose()
        app.state.risk_profile.dispose()

    return app


app = create_app()
