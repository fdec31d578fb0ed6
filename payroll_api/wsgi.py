# payroll_api/wsgi.py
from payroll_api import create_app

app = create_app()
