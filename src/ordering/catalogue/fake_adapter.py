"""In-memory catalogue for development and tests."""

from dataclasses import replace

from ordering.catalogue.port import ProductCatalogue, ProductSnapshot


class FakeCatalogue(ProductCatalogue):
    def __init__(self) -> None:
        self.products: dict[str, ProductSnapshot] = {}

    def register(self, product: ProductSnapshot) -> ProductSnapshot:
        self.products[str(product.product_id)] = product
        return product

    def deactivate(self, product_id: str) -> None:
        """Take a listing down (sold elsewhere, removed by the seller)."""
        product = self.products[str(product_id)]
        self.products[str(product_id)] = replace(product, is_active=False)

    def get_product(self, product_id: str) -> ProductSnapshot | None:
        return self.products.get(str(product_id))
