import html
import logging
from decimal import Decimal, InvalidOperation

import bleach
from flask import Blueprint, current_app, g, redirect, render_template, request, url_for

from core.database_models import Product
from core.extensions import db
from core.uploads import delete_image
from middleware.security import login_required

admin_bp = Blueprint('admin', __name__)
logger = logging.getLogger(__name__)

NOT_AN_IMAGE = 'Attached file is not an image.'


def _plain_text(value):
    """Strip markup; Jinja escapes on output"""
    return html.unescape(bleach.clean(value, tags=[], strip=True)).strip()


def validate_product_form(form):
    """
    Clean and check the product fields.

    Returns:
        (values, errors) where errors maps field name to message
    """
    values = {
        'title': _plain_text(form.get('title', '')),
        'price': form.get('price', '').strip(),
        'description': _plain_text(form.get('description', '')),
    }
    errors = {}

    if len(values['title']) < 3:
        errors['title'] = 'Title must be at least 3 characters long.'

    try:
        price = Decimal(values['price'])
        if not price.is_finite() or price < 0:
            raise InvalidOperation
        values['price'] = price.quantize(Decimal('0.01'))
    except InvalidOperation:
        errors['price'] = 'Price must be a positive number.'

    if not 5 <= len(values['description']) <= 400:
        errors['description'] = 'Description must be between 5 and 400 characters.'

    return values, errors


def _render_form(product, editing, errors=None, error_message=None, status=200):
    return render_template(
        'admin/edit-product.html',
        page_title='Edit Product' if editing else 'Add Product',
        path='/admin/edit-product' if editing else '/admin/add-product',
        editing=editing,
        product=product,
        has_error=bool(errors or error_message),
        error_message=error_message or next(iter((errors or {}).values()), None),
        validation_errors=errors or {}
    ), status


def _owned_product(product_id):
    product = db.session.get(Product, product_id) if product_id else None
    if product is None or product.user_id != g.user.id:
        return None
    return product


@admin_bp.route('/add-product')
@login_required
def get_add_product():
    return _render_form(product={}, editing=False)


@admin_bp.route('/add-product', methods=['POST'])
@login_required
def post_add_product():
    upload_folder = current_app.config['UPLOAD_FOLDER']
    values, errors = validate_product_form(request.form)

    if not g.image:
        return _render_form(values, editing=False, error_message=NOT_AN_IMAGE, status=422)

    if errors:
        delete_image(g.image, upload_folder)
        return _render_form(values, editing=False, errors=errors, status=422)

    product = Product(
        title=values['title'],
        price=values['price'],
        description=values['description'],
        image_filename=g.image,
        user_id=g.user.id
    )
    db.session.add(product)
    db.session.commit()
    logger.info(f"Product {product.id} created by {g.user.email}")
    return redirect(url_for('admin.products'))


@admin_bp.route('/edit-product/<product_id>')
@login_required
def get_edit_product(product_id):
    product = _owned_product(product_id)
    if product is None:
        return redirect(url_for('admin.products'))
    return _render_form(product, editing=True)


@admin_bp.route('/edit-product', methods=['POST'])
@login_required
def post_edit_product():
    upload_folder = current_app.config['UPLOAD_FOLDER']
    product = _owned_product(request.form.get('product_id'))
    if product is None:
        delete_image(g.image, upload_folder)
        return redirect(url_for('admin.products'))

    values, errors = validate_product_form(request.form)
    if errors:
        delete_image(g.image, upload_folder)
        values['id'] = product.id
        return _render_form(values, editing=True, errors=errors, status=422)

    product.title = values['title']
    product.price = values['price']
    product.description = values['description']
    if g.image:
        delete_image(product.image_filename, upload_folder)
        product.image_filename = g.image
    db.session.commit()
    return redirect(url_for('admin.products'))


@admin_bp.route('/products')
@login_required
def products():
    owned = (
        Product.query.filter_by(user_id=g.user.id)
        .order_by(Product.created_at.desc())
        .all()
    )
    return render_template(
        'admin/products.html',
        products=owned,
        page_title='Admin Products',
        path='/admin/products'
    )


@admin_bp.route('/delete-product', methods=['POST'])
@login_required
def post_delete_product():
    product = _owned_product(request.form.get('product_id'))
    if product is not None:
        product_id = product.id
        delete_image(product.image_filename, current_app.config['UPLOAD_FOLDER'])
        db.session.delete(product)
        db.session.commit()
        logger.info(f"Product {product_id} deleted by {g.user.email}")
    return redirect(url_for('admin.products'))
