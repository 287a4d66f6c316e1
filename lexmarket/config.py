from decouple import config, Csv

DATABASE_URL = config("DATABASE_URL", default="sqlite:///./lexmarket.db")
SQL_ECHO = config("SQL_ECHO", default=False, cast=bool)

CORS_ORIGINS = config(
    "CORS_ORIGINS",
    default="http://localhost:5173,http://localhost:8080",
    cast=Csv(),
)

LOG_LEVEL = config("LOG_LEVEL", default="INFO")
