"""REST API for the COD order desk."""
from order_desk.api.main import create_app

__all__ = ['create_app']
