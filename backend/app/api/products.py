"""
Products API Endpoints
Public catalog reads and admin product management
"""
import logging

from fastapi import APIRouter, Body, Depends, HTTPException, status

from app.core.auth import TokenUser, require_admin
from app.domain.product import ProductCreate, ProductOrder, ProductUpdate
from app.repositories.product_repository import ProductRepository
from app.services.product_service import ProductService, ProductValidationError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def get_products():
    """
    Get all products in display order

    Ordered by `order` ascending (products without one come last), then by creation date.
    """
    try:
        repo = ProductRepository()
        return [product.to_dict() for product in repo.find_all()]

    except Exception as e:
        logger.exception(f"Error fetching products: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch products")


@router.post("/reorder")
async def reorder_products(
    payload: dict = Body(...),
    user: TokenUser = Depends(require_admin)
):
    """
    Set display positions

    Body: {"products": [{"id": "...", "order": 1}, ...]}
    """
    entries = payload.get("products")
    if not isinstance(entries, list):
        raise HTTPException(status_code=400, detail="Products array is required")

    try:
        orders = [ProductOrder.model_validate(entry) for entry in entries]
    except ValueError:
        raise HTTPException(status_code=400, detail="Each product needs an id and a numeric order")

    try:
        repo = ProductRepository()
        products = repo.reorder({entry.id: entry.order for entry in orders})
        logger.info(f"Reordered {len(orders)} products")
        return {
            "message": "Products reordered successfully",
            "products": [product.to_dict() for product in products]
        }

    except Exception as e:
        logger.exception(f"Error reordering products: {e}")
        raise HTTPException(status_code=500, detail="Failed to reorder products")


@router.get("/{product_id}")
async def get_product(product_id: str):
    """Get a single product by ID"""
    try:
        repo = ProductRepository()
        product = repo.find_by_id(product_id)

    except Exception as e:
        logger.exception(f"Error fetching product {product_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch product")

    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product.to_dict()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_product(
    data: ProductCreate,
    user: TokenUser = Depends(require_admin)
):
    """
    Create a product (admin only)

    Requires name, price, category, description, at least one color and one size.
    """
    try:
        product = ProductService().create_product(data)
        return product.to_dict()

    except ProductValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception(f"Error creating product: {e}")
        raise HTTPException(status_code=500, detail="Failed to create product")


@router.put("/{product_id}")
async def update_product(
    product_id: str,
    data: ProductUpdate,
    user: TokenUser = Depends(require_admin)
):
    """Partially update a product (admin only); omitted fields are kept"""
    try:
        product = ProductService().update_product(product_id, data)

    except Exception as e:
        logger.exception(f"Error updating product {product_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update product")

    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product.to_dict()


@router.delete("/{product_id}")
async def delete_product(
    product_id: str,
    user: TokenUser = Depends(require_admin)
):
    """Delete a product (admin only)"""
    try:
        deleted = ProductRepository().delete(product_id)

    except Exception as e:
        logger.exception(f"Error deleting product {product_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete product")

    if not deleted:
        raise HTTPException(status_code=404, detail="Product not found")

    logger.info(f"Deleted product {product_id}")
    return {"message": "Product deleted successfully"}
