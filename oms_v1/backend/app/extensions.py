from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

from app.services.cache_service import CacheService

db = SQLAlchemy()
jwt = JWTManager()
migrate = Migrate()
cache = CacheService()
