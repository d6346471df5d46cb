"""starterkit -- setup, readiness polling and Docker lifecycle for the
e-commerce starter stack (backend + storefront).

Quick usage::

    from starterkit.renamer import setup_project
    from starterkit.readiness import HealthProbe, ReadinessPoller

    setup_project(".", "my-shop")
    result = await ReadinessPoller(HealthProbe(url="http://localhost:9000/store/regions")).wait()
"""

__version__ = "0.1.0"
