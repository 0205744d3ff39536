from dashboard.api import create_app
from orchestrator.config import EngineConfig
from orchestrator.core import create_pool_risk_engine, setup_logging

config = EngineConfig.from_env()
setup_logging(config.log_level, config.log_format)

app = create_app(create_pool_risk_engine(config))

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
