"""Product ingestion endpoints."""

import datetime

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from porcelain_rag.api.dependencies import get_services
from porcelain_rag.api.schemas import ProductDataRequest
from porcelain_rag.config import config
from porcelain_rag.document_processing import IMAGE_CONTENT_TYPES
from porcelain_rag.services import Services

logger = config.get_logger(__name__)
router = APIRouter()

MAX_PRODUCT_FILES = 10
MAX_IMAGE_FILES = 20


def _read_limited(upload: UploadFile) -> bytes:
    """Read an upload, refusing files over the size limit.

    Raises:
        ValueError: If the file exceeds config.UPLOAD_MAX_BYTES.
    """
    data = upload.file.read(config.UPLOAD_MAX_BYTES + 1)
    if len(data) > config.UPLOAD_MAX_BYTES:
        msg = f"File exceeds {config.UPLOAD_MAX_BYTES} bytes"
        raise ValueError(msg)
    return data


@router.post("/products")
def upload_products(
    files: list[UploadFile] = File(...),
    product_id: str | None = Form(None, alias="productId"),
    services: Services = Depends(get_services),
):
    """Ingest JSON product files, or TXT/PDF documents for an existing product."""
    if len(files) > MAX_PRODUCT_FILES:
        raise HTTPException(
            status_code=400, detail=f"At most {MAX_PRODUCT_FILES} files per upload"
        )

    results = []
    for upload in files:
        filename = upload.filename or "upload"
        try:
            data = _read_limited(upload)
            result = services.ingestor.process_upload(
                filename, upload.content_type, data, product_id=product_id
            )
        except Exception as e:
            logger.exception("Error processing file %s", filename)
            results.append({"filename": filename, "status": "error", "error": str(e)})
        else:
            results.append({"filename": filename, "status": "success", **result})

    return {"message": "Files processed", "results": results}


@router.post("/product-data")
def upload_product_data(
    request: ProductDataRequest, services: Services = Depends(get_services)
):
    """Create products from a JSON body and embed their text."""
    products = [product.model_dump(exclude_none=True) for product in request.products]
    try:
        results = services.ingestor.ingest_products(products)
    except Exception:
        logger.exception("Product data upload error")
        raise HTTPException(
            status_code=500, detail="Failed to process product data"
        ) from None
    return {"message": "Products processed", "results": results}


@router.post("/images")
def upload_images(
    images: list[UploadFile] = File(...),
    product_id: str = Form(..., alias="productId"),
    services: Services = Depends(get_services),
):
    """Store product images; the first one stored becomes the primary image."""
    if len(images) > MAX_IMAGE_FILES:
        raise HTTPException(
            status_code=400, detail=f"At most {MAX_IMAGE_FILES} images per upload"
        )

    results = []
    stored = 0
    for upload in images:
        filename = upload.filename or "image"
        try:
            if upload.content_type not in IMAGE_CONTENT_TYPES:
                msg = f"Invalid image type: {upload.content_type}"
                raise ValueError(msg)
            url = services.ingestor.store_image(
                product_id,
                filename,
                _read_limited(upload),
                upload.content_type,
                is_primary=stored == 0,
            )
        except Exception as e:
            logger.exception("Error uploading image %s", filename)
            results.append({"filename": filename, "status": "error", "error": str(e)})
        else:
            stored += 1
            results.append(
                {"filename": filename, "image_url": url, "status": "success"}
            )

    return {"message": "Images uploaded", "results": results}


@router.get("/status")
def upload_status(services: Services = Depends(get_services)):
    try:
        stats = services.retriever.embeddings_stats()
        products = services.store.list_products()
    except Exception:
        logger.exception("Status check error")
        raise HTTPException(
            status_code=500, detail="Failed to get upload status"
        ) from None
    categories = sorted({product.category for product in products if product.category})
    return {
        "embeddings": stats,
        "products": {"total": len(products), "categories": categories},
        "timestamp": datetime.datetime.now(tz=datetime.UTC).isoformat(),
    }
