from datetime import datetime
import uuid
from decimal import Decimal

from sqlalchemy import (
    Column, String, DateTime, JSON, Text, Numeric, ForeignKey
)
from sqlalchemy.orm import relationship
from werkzeug.security import generate_password_hash, check_password_hash

from core.extensions import db


def _new_id():
    return str(uuid.uuid4())


class User(db.Model):
    __tablename__ = 'users'

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    cart = Column(JSON, nullable=False, default=list)  # [{product_id, quantity}]
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    products = relationship("Product", back_populates="owner")
    orders = relationship("Order", back_populates="user")

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def add_to_cart(self, product):
        """Add one unit of ``product``, merging with an existing line"""
        items = [dict(item) for item in (self.cart or [])]
        for item in items:
            if item['product_id'] == product.id:
                item['quantity'] += 1
                break
        else:
            items.append({'product_id': product.id, 'quantity': 1})
        # reassign so the JSON column is flagged dirty
        self.cart = items

    def remove_from_cart(self, product_id):
        self.cart = [item for item in (self.cart or []) if item['product_id'] != product_id]

    def clear_cart(self):
        self.cart = []

    def __repr__(self):
        return f"<User {self.email}>"


class Product(db.Model):
    __tablename__ = 'products'

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    description = Column(Text, nullable=False)
    image_filename = Column(String(512), nullable=False)  # relative to UPLOAD_FOLDER
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    owner = relationship("User", back_populates="products")

    def __repr__(self):
        return f"<Product {self.title!r}>"


class Order(db.Model):
    __tablename__ = 'orders'

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    user_email = Column(String(255), nullable=False)
    items = Column(JSON, nullable=False)  # snapshots: {product_id, title, price, quantity}
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="orders")

    @property
    def total(self):
        return sum(
            (Decimal(item['price']) * item['quantity'] for item in self.items),
            Decimal('0')
        )


class SessionRecord(db.Model):
    __tablename__ = 'sessions'

    id = Column(String(64), primary_key=True)
    data = Column(Text, nullable=False)  # tagged-JSON session payload
    expires = Column(DateTime, nullable=False, index=True)
