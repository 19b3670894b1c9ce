"""
Catalog hierarchy manager.

Client-side logic of the admin "Categories & Brands" screen, driven over the
admin REST API with a requests.Session:

- listings are read through a query cache keyed by endpoint path and
  invalidated after every successful mutation (never after a failure)
- name / parent selection is validated before any request is sent
- drag-and-drop reorders compute the new permutation locally and send the
  complete id list of the sibling group
- featured product selection is held locally and saved as a full array
- every outcome is recorded as a toast-like Notification; mutation methods
  return None on failure instead of raising

Usage:
    manager = CatalogManager('https://shop.example.com')
    manager.authenticate('admin', 'secret')
    manager.create_category('Disposables')
    manager.move_category(active_id=7, over_id=3)
"""
import logging
from typing import Any, Dict, List, NamedTuple, Optional, Set, Tuple
from urllib.parse import urlencode

import requests

logger = logging.getLogger('backend.catalog.admin_client')

DEFAULT_TIMEOUT = 30
PRODUCTS_PAGE_SIZE = 500

CATEGORIES_PATH = '/api/admin/delivery/categories'
BRANDS_PATH = '/api/admin/delivery/brands'
PRODUCT_LINES_PATH = '/api/admin/delivery/product-lines'
PRODUCTS_PATH = '/api/admin/delivery/products'
UPLOAD_URL_PATH = '/api/admin/delivery/products/upload-url'

NODE_PATHS = {
    'category': CATEGORIES_PATH,
    'brand': BRANDS_PATH,
    'productLine': PRODUCT_LINES_PATH,
}

HIERARCHY_PATHS = (CATEGORIES_PATH, BRANDS_PATH, PRODUCT_LINES_PATH)


class ClientValidationError(Exception):
    """Input rejected before any request was sent"""


class RequestFailed(Exception):
    """Non-2xx response or network failure"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class Notification(NamedTuple):
    title: str
    description: str = ''
    variant: str = 'default'  # 'default' or 'destructive'


def array_move(items: List[Any], old_index: int, new_index: int) -> List[Any]:
    """Remove the item at old_index and reinsert it at new_index"""
    moved = list(items)
    moved.insert(new_index, moved.pop(old_index))
    return moved


def sort_siblings(nodes: List[Dict]) -> List[Dict]:
    return sorted(nodes, key=lambda node: (node.get('displayOrder') or 0, node['id']))


class CatalogManager:
    """Stateful client for managing the Category -> Brand -> ProductLine tree"""

    def __init__(self, base_url: str = '', session: Optional[requests.Session] = None,
                 timeout: int = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        # Uploads go straight to blob storage, without the API bearer token
        self.upload_session = requests.Session()
        self.timeout = timeout
        self.cache: Dict[str, Any] = {}
        self.notifications: List[Notification] = []

        # Ephemeral view state
        self.expanded_categories: Set[int] = set()
        self.expanded_brands: Set[int] = set()
        self.featured_target: Optional[Tuple[str, int]] = None
        self.featured_selection: List[int] = []

    # Auth

    def authenticate(self, username: str, password: str) -> bool:
        """Obtain a JWT and attach it to the session as a Bearer token"""
        try:
            data = self._request('POST', '/api/auth/login/',
                                 json={'username': username, 'password': password})
        except RequestFailed as e:
            logger.warning(f"Authentication failed for {username}: {e.message}")
            self._notify('Login failed', e.message, 'destructive')
            return False
        self.set_token(data['access'])
        return True

    def set_token(self, access_token: str):
        self.session.headers.update({'Authorization': f'Bearer {access_token}'})

    # Transport

    def _request(self, method: str, path: str, json: Any = None,
                 params: Optional[Dict] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, json=json, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise RequestFailed(str(e)) from e

        if not 200 <= response.status_code < 300:
            raise RequestFailed(self._error_message(response), response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    @staticmethod
    def _error_message(response) -> str:
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and data.get('error'):
            return str(data['error'])
        return response.text or response.reason or f'HTTP {response.status_code}'

    # Query cache

    @staticmethod
    def _cache_key(path: str, params: Optional[Dict] = None) -> str:
        if not params:
            return path
        return f"{path}?{urlencode(sorted(params.items()))}"

    def _query(self, path: str, params: Optional[Dict] = None) -> Any:
        key = self._cache_key(path, params)
        if key in self.cache:
            return self.cache[key]
        data = self._request('GET', path, params=params)
        self.cache[key] = data
        return data

    def invalidate(self, *paths: str):
        """Drop cached listings for the given paths (and their query variants)"""
        for key in list(self.cache):
            if any(key == path or key.startswith(f"{path}?") for path in paths):
                del self.cache[key]

    # Notifications

    def _notify(self, title: str, description: str = '', variant: str = 'default'):
        notification = Notification(title, description, variant)
        self.notifications.append(notification)
        return notification

    def _fail(self, title: str, error: Exception):
        description = error.message if isinstance(error, RequestFailed) else ''
        logger.warning(f"{title}: {error}")
        self._notify(title, description, 'destructive')
        return None

    def _invalid(self, error: ClientValidationError):
        self._notify(str(error), '', 'destructive')
        return None

    # Listings

    def fetch_categories(self) -> List[Dict]:
        return sort_siblings(self._query(CATEGORIES_PATH) or [])

    def fetch_brands(self) -> List[Dict]:
        return self._query(BRANDS_PATH) or []

    def fetch_product_lines(self) -> List[Dict]:
        return self._query(PRODUCT_LINES_PATH) or []

    def fetch_products(self) -> List[Dict]:
        """All products (every page), cached under the products path"""
        if PRODUCTS_PATH in self.cache:
            return self.cache[PRODUCTS_PATH]
        products = []
        page = 1
        while True:
            data = self._request('GET', PRODUCTS_PATH, params={'page': page, 'limit': PRODUCTS_PAGE_SIZE})
            products.extend(data.get('products', []))
            if page >= (data.get('totalPages') or 0):
                break
            page += 1
        self.cache[PRODUCTS_PATH] = products
        return products

    def brands_for(self, category_id: int) -> List[Dict]:
        return sort_siblings([b for b in self.fetch_brands() if b.get('categoryId') == category_id])

    def product_lines_for(self, brand_id: int) -> List[Dict]:
        return sort_siblings([pl for pl in self.fetch_product_lines() if pl.get('brandId') == brand_id])

    def _node(self, node_type: str, node_id: int) -> Optional[Dict]:
        nodes = {
            'category': self.fetch_categories,
            'brand': self.fetch_brands,
            'productLine': self.fetch_product_lines,
        }[node_type]()
        return next((node for node in nodes if node['id'] == node_id), None)

    # Validation

    @staticmethod
    def _require_name(name: Optional[str], message: str) -> str:
        if not name or not name.strip():
            raise ClientValidationError(message)
        return name.strip()

    @staticmethod
    def _require_parent(parent_id: Optional[int], message: str) -> int:
        if parent_id is None:
            raise ClientValidationError(message)
        return parent_id

    @staticmethod
    def _optional_fields(image: Optional[str] = None, logo: Optional[str] = None,
                         is_active: Optional[bool] = None) -> Dict:
        """Fields for a PATCH body, leaving out the ones not given so stored values survive"""
        fields = {}
        if image is not None:
            fields['image'] = image or None
        if logo is not None:
            fields['logo'] = logo or None
        if is_active is not None:
            fields['isActive'] = is_active
        return fields

    # Categories

    def create_category(self, name: str, image: Optional[str] = None, is_active: bool = True):
        try:
            body = {'name': self._require_name(name, 'Category name is required'),
                    'image': image or None, 'isActive': is_active}
            created = self._request('POST', CATEGORIES_PATH, json=body)
        except ClientValidationError as e:
            return self._invalid(e)
        except RequestFailed as e:
            return self._fail('Error creating category', e)
        self.invalidate(CATEGORIES_PATH)
        self._notify('Category created successfully')
        return created

    def update_category(self, category_id: int, name: str, image: Optional[str] = None,
                        is_active: Optional[bool] = None):
        """Rename a category; image and isActive are only sent when given ('' clears the image)"""
        try:
            body = {'name': self._require_name(name, 'Category name is required')}
            body.update(self._optional_fields(image=image, is_active=is_active))
            updated = self._request('PATCH', f"{CATEGORIES_PATH}/{category_id}", json=body)
        except ClientValidationError as e:
            return self._invalid(e)
        except RequestFailed as e:
            return self._fail('Error updating category', e)
        self.invalidate(CATEGORIES_PATH)
        self._notify('Category updated successfully')
        return updated

    def delete_category(self, category_id: int) -> bool:
        """Delete a category; the server cascades to its brands and product lines"""
        try:
            self._request('DELETE', f"{CATEGORIES_PATH}/{category_id}")
        except RequestFailed as e:
            self._fail('Error deleting category', e)
            return False
        self.invalidate(*HIERARCHY_PATHS, PRODUCTS_PATH)
        self.expanded_categories.discard(category_id)
        self._notify('Category deleted successfully')
        return True

    def reorder_categories(self, ordered_ids: List[int]) -> bool:
        try:
            self._request('POST', f"{CATEGORIES_PATH}/reorder", json={'orderedIds': list(ordered_ids)})
        except RequestFailed as e:
            self._fail('Error reordering categories', e)
            return False
        self.invalidate(CATEGORIES_PATH)
        return True

    def move_category(self, active_id: int, over_id: Optional[int]) -> bool:
        """Drop category `active_id` onto the position of `over_id`"""
        return self._move(self.fetch_categories(), active_id, over_id, self.reorder_categories)

    # Brands

    def create_brand(self, name: str, category_id: Optional[int], logo: Optional[str] = None,
                     is_active: bool = True):
        try:
            body = {'name': self._require_name(name, 'Brand name is required'),
                    'categoryId': self._require_parent(category_id, 'Please select a category'),
                    'logo': logo or None, 'isActive': is_active}
            created = self._request('POST', BRANDS_PATH, json=body)
        except ClientValidationError as e:
            return self._invalid(e)
        except RequestFailed as e:
            return self._fail('Error creating brand', e)
        self.invalidate(BRANDS_PATH)
        self._notify('Brand created successfully')
        return created

    def update_brand(self, brand_id: int, name: str, category_id: Optional[int],
                     logo: Optional[str] = None, is_active: Optional[bool] = None):
        try:
            body = {'name': self._require_name(name, 'Brand name is required'),
                    'categoryId': self._require_parent(category_id, 'Please select a category')}
            body.update(self._optional_fields(logo=logo, is_active=is_active))
            updated = self._request('PATCH', f"{BRANDS_PATH}/{brand_id}", json=body)
        except ClientValidationError as e:
            return self._invalid(e)
        except RequestFailed as e:
            return self._fail('Error updating brand', e)
        self.invalidate(BRANDS_PATH)
        self._notify('Brand updated successfully')
        return updated

    def delete_brand(self, brand_id: int) -> bool:
        """Delete a brand; the server cascades to its product lines"""
        try:
            self._request('DELETE', f"{BRANDS_PATH}/{brand_id}")
        except RequestFailed as e:
            self._fail('Error deleting brand', e)
            return False
        self.invalidate(BRANDS_PATH, PRODUCT_LINES_PATH, PRODUCTS_PATH)
        self.expanded_brands.discard(brand_id)
        self._notify('Brand deleted successfully')
        return True

    def reorder_brands(self, category_id: int, ordered_ids: List[int]) -> bool:
        try:
            self._request('POST', f"{BRANDS_PATH}/reorder",
                          json={'categoryId': category_id, 'orderedIds': list(ordered_ids)})
        except RequestFailed as e:
            self._fail('Error reordering brands', e)
            return False
        self.invalidate(BRANDS_PATH)
        return True

    def move_brand(self, category_id: int, active_id: int, over_id: Optional[int]) -> bool:
        return self._move(self.brands_for(category_id), active_id, over_id,
                          lambda ids: self.reorder_brands(category_id, ids))

    # Product lines

    def create_product_line(self, name: str, brand_id: Optional[int], logo: Optional[str] = None,
                            is_active: bool = True):
        try:
            body = {'name': self._require_name(name, 'Product line name is required'),
                    'brandId': self._require_parent(brand_id, 'Please select a brand'),
                    'logo': logo or None, 'isActive': is_active}
            created = self._request('POST', PRODUCT_LINES_PATH, json=body)
        except ClientValidationError as e:
            return self._invalid(e)
        except RequestFailed as e:
            return self._fail('Error creating product line', e)
        self.invalidate(PRODUCT_LINES_PATH)
        self._notify('Product line created successfully')
        return created

    def update_product_line(self, product_line_id: int, name: str, brand_id: Optional[int],
                            logo: Optional[str] = None, is_active: Optional[bool] = None):
        try:
            body = {'name': self._require_name(name, 'Product line name is required'),
                    'brandId': self._require_parent(brand_id, 'Please select a brand')}
            body.update(self._optional_fields(logo=logo, is_active=is_active))
            updated = self._request('PATCH', f"{PRODUCT_LINES_PATH}/{product_line_id}", json=body)
        except ClientValidationError as e:
            return self._invalid(e)
        except RequestFailed as e:
            return self._fail('Error updating product line', e)
        self.invalidate(PRODUCT_LINES_PATH)
        self._notify('Product line updated successfully')
        return updated

    def delete_product_line(self, product_line_id: int) -> bool:
        try:
            self._request('DELETE', f"{PRODUCT_LINES_PATH}/{product_line_id}")
        except RequestFailed as e:
            self._fail('Error deleting product line', e)
            return False
        self.invalidate(PRODUCT_LINES_PATH, PRODUCTS_PATH)
        self._notify('Product line deleted successfully')
        return True

    def reorder_product_lines(self, brand_id: int, ordered_ids: List[int]) -> bool:
        try:
            self._request('POST', f"{PRODUCT_LINES_PATH}/reorder",
                          json={'brandId': brand_id, 'orderedIds': list(ordered_ids)})
        except RequestFailed as e:
            self._fail('Error reordering product lines', e)
            return False
        self.invalidate(PRODUCT_LINES_PATH)
        return True

    def move_product_line(self, brand_id: int, active_id: int, over_id: Optional[int]) -> bool:
        return self._move(self.product_lines_for(brand_id), active_id, over_id,
                          lambda ids: self.reorder_product_lines(brand_id, ids))

    # Drag and drop

    @staticmethod
    def can_reorder(siblings: List[Dict]) -> bool:
        """Drag handles are only shown for groups of two or more"""
        return len(siblings) >= 2

    def _move(self, siblings: List[Dict], active_id: int, over_id: Optional[int], send) -> bool:
        """
        Compute the permutation for a drop and send it.

        Returns False without sending anything when the drop is a no-op
        (no target, dropped onto itself, or either id not in the group).
        """
        if over_id is None or active_id == over_id:
            return False
        ids = [node['id'] for node in siblings]
        if active_id not in ids or over_id not in ids:
            return False
        new_order = array_move(ids, ids.index(active_id), ids.index(over_id))
        return send(new_order)

    # Expand / collapse

    def toggle_category(self, category_id: int):
        self.expanded_categories ^= {category_id}

    def toggle_brand(self, brand_id: int):
        self.expanded_brands ^= {brand_id}

    def is_expanded(self, node_type: str, node_id: int) -> bool:
        if node_type == 'category':
            return node_id in self.expanded_categories
        if node_type == 'brand':
            return node_id in self.expanded_brands
        return False

    # Featured products

    def open_featured(self, node_type: str, node_id: int) -> List[int]:
        """Start editing a node's featured list, seeded from its stored ids"""
        if node_type not in NODE_PATHS:
            raise ValueError(f"Unknown node type: {node_type}")
        node = self._node(node_type, node_id) or {}
        self.featured_target = (node_type, node_id)
        self.featured_selection = list(node.get('featuredProductIds') or [])
        return self.featured_selection

    def eligible_products(self) -> List[Dict]:
        """Enabled products belonging to the node being edited"""
        if not self.featured_target:
            return []
        node_type, node_id = self.featured_target
        products = [p for p in self.fetch_products() if p.get('enabled')]

        if node_type == 'category':
            brand_ids = {b['id'] for b in self.brands_for(node_id)}
            return [p for p in products if p.get('brandId') and p['brandId'] in brand_ids]
        if node_type == 'brand':
            return [p for p in products if p.get('brandId') == node_id]
        return [p for p in products if p.get('productLineId') == node_id]

    def toggle_featured(self, product_id: int) -> List[int]:
        """Add or remove a product from the selection, keeping selection order"""
        if product_id in self.featured_selection:
            self.featured_selection = [pid for pid in self.featured_selection if pid != product_id]
        else:
            self.featured_selection = self.featured_selection + [product_id]
        return self.featured_selection

    def close_featured(self):
        self.featured_target = None
        self.featured_selection = []

    def save_featured(self):
        """Replace the node's featured list with the current selection"""
        if not self.featured_target:
            return None
        node_type, node_id = self.featured_target
        try:
            updated = self._request('PATCH', f"{NODE_PATHS[node_type]}/{node_id}",
                                    json={'featuredProductIds': list(self.featured_selection)})
        except RequestFailed as e:
            return self._fail('Error updating featured products', e)
        self.invalidate(*HIERARCHY_PATHS)
        self._notify('Featured products updated successfully')
        self.close_featured()
        return updated

    # Image upload

    def upload_image(self, data: bytes, name: str, content_type: str = 'application/octet-stream'):
        """
        Two-step upload: ask for a pre-signed URL, then PUT the bytes to it.
        Returns the object path to store as the entity's image/logo.
        """
        try:
            target = self._request('POST', UPLOAD_URL_PATH,
                                   json={'name': name, 'size': len(data), 'contentType': content_type})
            if not isinstance(target, dict) or not target.get('uploadURL') or not target.get('objectPath'):
                raise RequestFailed('Upload URL response is missing uploadURL or objectPath')
            try:
                response = self.upload_session.put(
                    target['uploadURL'], data=data, timeout=self.timeout,
                    headers={'Content-Type': content_type or 'application/octet-stream',
                             'x-ms-blob-type': 'BlockBlob'},
                )
            except requests.RequestException as e:
                raise RequestFailed(str(e)) from e
            if not 200 <= response.status_code < 300:
                raise RequestFailed('Failed to upload image', response.status_code)
        except RequestFailed as e:
            return self._fail('Failed to upload image', e)
        self._notify('Image uploaded successfully')
        return target['objectPath']
