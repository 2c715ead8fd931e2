import logging

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, url_for
from sqlalchemy import select

from core.database_models import Order, Product
from core.extensions import db
from middleware.security import login_required

shop_bp = Blueprint('shop', __name__)
logger = logging.getLogger(__name__)


def _paginated_products(template, page_title, path):
    page = request.args.get('page', 1, type=int)
    pagination = db.paginate(
        select(Product).order_by(Product.created_at.desc(), Product.id),
        page=page,
        per_page=current_app.config['PRODUCTS_PER_PAGE'],
        error_out=False
    )
    return render_template(
        template,
        products=pagination.items,
        pagination=pagination,
        page_title=page_title,
        path=path
    )


def cart_lines(user):
    """Cart entries joined with their products; vanished products are skipped"""
    items = user.cart or []
    ids = [item['product_id'] for item in items]
    if not ids:
        return []
    products = {p.id: p for p in Product.query.filter(Product.id.in_(ids)).all()}
    return [
        {'product': products[item['product_id']], 'quantity': item['quantity']}
        for item in items
        if item['product_id'] in products
    ]


@shop_bp.route('/')
def index():
    return _paginated_products('shop/index.html', 'Shop', '/')


@shop_bp.route('/products')
def products():
    return _paginated_products('shop/product-list.html', 'Products', '/products')


@shop_bp.route('/products/<product_id>')
def product_detail(product_id):
    product = db.get_or_404(Product, product_id)
    return render_template(
        'shop/product-detail.html',
        product=product,
        page_title=product.title,
        path='/products'
    )


@shop_bp.route('/cart')
@login_required
def cart():
    return render_template(
        'shop/cart.html',
        lines=cart_lines(g.user),
        page_title='Your Cart',
        path='/cart'
    )


@shop_bp.route('/cart', methods=['POST'])
@login_required
def add_to_cart():
    product = db.get_or_404(Product, request.form.get('product_id', ''))
    g.user.add_to_cart(product)
    db.session.commit()
    return redirect(url_for('shop.cart'))


@shop_bp.route('/cart-delete-item', methods=['POST'])
@login_required
def cart_delete_item():
    g.user.remove_from_cart(request.form.get('product_id', ''))
    db.session.commit()
    return redirect(url_for('shop.cart'))


@shop_bp.route('/create-order', methods=['POST'])
@login_required
def create_order():
    lines = cart_lines(g.user)
    if not lines:
        flash('Your cart is empty.', 'error')
        return redirect(url_for('shop.cart'))

    order = Order(
        user_id=g.user.id,
        user_email=g.user.email,
        items=[
            {
                'product_id': line['product'].id,
                'title': line['product'].title,
                'price': str(line['product'].price),
                'quantity': line['quantity'],
            }
            for line in lines
        ]
    )
    db.session.add(order)
    g.user.clear_cart()
    db.session.commit()
    logger.info(f"Order {order.id} placed by {g.user.email}")
    return redirect(url_for('shop.orders'))


@shop_bp.route('/orders')
@login_required
def orders():
    user_orders = (
        Order.query.filter_by(user_id=g.user.id)
        .order_by(Order.created_at.desc())
        .all()
    )
    return render_template(
        'shop/orders.html',
        orders=user_orders,
        page_title='Your Orders',
        path='/orders'
    )
