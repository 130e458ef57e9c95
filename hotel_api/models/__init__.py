# hotel_api/models/__init__.py
import importlib

# every module that declares tables; establishment first, the rest hang off it
MODEL_MODULES = (
    "establishment",
    "user",
    "employee",
    "leave",
    "payroll",
    "booking",
    "finance",
    "access_log",
)


def load_all():
    """Import the model modules so db.metadata knows every table."""
    return [importlib.import_module(f"{__name__}.{name}") for name in MODEL_MODULES]
