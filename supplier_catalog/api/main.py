import logging

from fastapi import FastAPI

from supplier_catalog.api.endpoints import health, products

logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(levelname)s] %(name)s: %(message)s')

app = FastAPI(title="Supplier Catalog")

app.include_router(health.router, prefix="/health", tags=["Health"])
app.include_router(products.router, prefix="/api/products", tags=["Products"])


@app.get("/health")
def health_check():
    return {"status": "ok"}
