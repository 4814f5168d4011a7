"""Request and response bodies for the JSON API."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------- pricing ----------
class DimensionsIn(BaseModel):
    length: float
    width: float
    height: float


class PriceRequest(BaseModel):
    dimensions: DimensionsIn
    labor_days: Optional[float] = None   # defaults to the item's estimate
    leg_material_name: str
    top_material_name: str


class PlanksOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    legs: int
    tabletop: int
    frame: int


class PriceBreakdownOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_labor_cost: float
    total_material_cost: float
    overhead_cost: float
    subtotal: float
    profit_amount: float
    final_selling_price: float
    planks: PlanksOut
    volume: float
    leg_material: Optional[str] = None
    top_material: Optional[str] = None
    labor_days: Optional[float] = None


class MaterialOptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    plank_3x3_cost: float
    plank_2x12_cost: float


class ItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    price: float
    stock: int
    length: float
    width: float
    height: float
    is_customizable: bool
    estimated_days: int
    materials: List[MaterialOptionOut] = []


# ---------- orders ----------
class CustomSpecIn(BaseModel):
    length: float
    width: float
    height: float
    leg_material_name: str
    top_material_name: str
    labor_days: Optional[float] = None


class OrderLineIn(BaseModel):
    item_id: int
    quantity: int = Field(1, ge=1)
    custom: Optional[CustomSpecIn] = None


class ShippingAddressIn(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None
    address_line1: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None


class OrderCreate(BaseModel):
    lines: List[OrderLineIn]
    delivery_option: str
    payment_type: str = "full_payment"
    shipping_fee: float = 0
    shipping_address: Optional[ShippingAddressIn] = None


class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    item_id: int
    product_name: str
    quantity: int
    unit_price: float
    line_total: float
    is_custom: bool
    custom_length: Optional[float] = None
    custom_width: Optional[float] = None
    custom_height: Optional[float] = None
    legs_frame_material: Optional[str] = None
    tabletop_material: Optional[str] = None
    price_breakdown: Optional[dict] = None


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    created_at: datetime
    delivery_option: str
    shipping_fee: float
    payment_type: str
    amount: float
    amount_paid: float
    balance: float
    down_payment_amount: float
    has_custom_items: bool
    status: str
    payment_status: str
    remarks: Optional[str] = None
    delivery_proof: Optional[str] = None
    delivery_date: Optional[datetime] = None
    items: List[OrderItemOut] = []


class PaymentSplitOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    customized_total: float
    normal_total: float
    down_payment_amount: float
    remaining_balance: float
    full_amount: float
    shipping_fee: float
    payment_type: str
    amount_due_now: float


class OrderCreated(BaseModel):
    order: OrderOut
    split: PaymentSplitOut
    amount_due: float


class OrderStatusOut(BaseModel):
    order_id: int
    status: str
    payment_status: str


class TransitionRequest(BaseModel):
    status: str
    remarks: Optional[str] = None
    proof_ref: Optional[str] = None


class RemarksIn(BaseModel):
    remarks: Optional[str] = None


class BalanceCheckoutOut(BaseModel):
    order_id: int
    payment_status: str
    amount_due: float


class PaymentConfirmation(BaseModel):
    order_id: int
    payment_context: str = "new_order"
    transaction_id: Optional[str] = None


# ---------- cart / stock ----------
class CartAdd(BaseModel):
    item_id: int
    quantity: int = Field(1, ge=1)
    custom: Optional[CustomSpecIn] = None


class CartQuantity(BaseModel):
    quantity: int = Field(..., ge=0)


class CartLineOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    item_id: int
    quantity: int
    custom_length: Optional[float] = None
    custom_width: Optional[float] = None
    custom_height: Optional[float] = None
    legs_frame_material: Optional[str] = None
    tabletop_material: Optional[str] = None
    custom_price: Optional[float] = None


class StockEntry(BaseModel):
    item_id: int
    quantity: int = Field(..., ge=1)


class StockDecrease(BaseModel):
    items: List[StockEntry]
    order_id: Optional[int] = None
