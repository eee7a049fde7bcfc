from sqlalchemy.orm import declarative_base

# Single declarative base shared by every model.
Base = declarative_base()
