"""
Elastic Beanstalk / WSGI entry point

Elastic Beanstalk looks for a module-level `application` object.
"""
from backend.app import app as application

# For local testing
if __name__ == "__main__":
    application.run(debug=True)
