from django.db import models
from django.utils import timezone
from decimal import Decimal
from shopstock.core.models import User


class PurchaseOrder(models.Model):
    """Purchase order placed with a supplier"""
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('awaiting_export', 'Awaiting Export'),
        ('pending', 'Pending Delivery'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]

    # Allowed status moves; cancelled is reachable from any non-final status
    TRANSITIONS = {
        'draft': ('awaiting_export', 'cancelled'),
        'awaiting_export': ('pending', 'cancelled'),
        'pending': ('completed', 'cancelled'),
        'completed': (),
        'cancelled': (),
    }

    order_date = models.DateField(default=timezone.localdate)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='draft', db_index=True)
    supplier_name = models.CharField(max_length=200, blank=True, null=True)
    invoice_amount = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    discount_amount = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    shipping_fee = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    final_amount = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    notes = models.TextField(blank=True, null=True)
    invoice_images = models.JSONField(default=list, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='purchase_orders')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"PO-{self.id} ({self.supplier_name or 'no supplier'})"

    def can_transition_to(self, new_status):
        return new_status in self.TRANSITIONS.get(self.status, ())

    def recalculate_totals(self, save=True):
        """total = sum(quantity * purchase_price); final = total - discount + shipping"""
        total = sum((item.quantity * item.purchase_price for item in self.items.all()), Decimal('0'))
        self.total_amount = total
        self.final_amount = total - (self.discount_amount or 0) + (self.shipping_fee or 0)
        if save:
            self.save(update_fields=['total_amount', 'final_amount', 'updated_at'])
        return self.final_amount

    @property
    def has_shortage(self):
        """True when the latest goods receiving recorded a shortage"""
        receiving = self.receivings.order_by('-created_at', '-id').first()
        if receiving is None:
            return False
        return receiving.items.filter(discrepancy_type='shortage').exists()

    class Meta:
        db_table = 'purchase_orders'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['status', '-created_at'], name='idx_po_status_created'),
        ]


class PurchaseOrderItem(models.Model):
    """Purchase order line; also tracks the line's TPOS product creation"""
    SYNC_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('processing', 'Processing'),
        ('success', 'Success'),
        ('failed', 'Failed'),
    ]

    purchase_order = models.ForeignKey(PurchaseOrder, on_delete=models.CASCADE, related_name='items')
    position = models.PositiveIntegerField(default=0)
    quantity = models.PositiveIntegerField(default=1)
    notes = models.TextField(blank=True, null=True)
    product_code = models.CharField(max_length=100)
    product_name = models.CharField(max_length=500)
    variant = models.CharField(max_length=500, blank=True, null=True)
    purchase_price = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    selling_price = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    product_images = models.JSONField(default=list, blank=True)
    price_images = models.JSONField(default=list, blank=True)
    tpos_product_id = models.BigIntegerField(null=True, blank=True)
    selected_attribute_value_ids = models.JSONField(default=list, blank=True)
    tpos_sync_status = models.CharField(max_length=20, choices=SYNC_STATUS_CHOICES, default='pending', db_index=True)
    tpos_sync_error = models.TextField(blank=True, null=True)
    tpos_sync_started_at = models.DateTimeField(null=True, blank=True)
    tpos_sync_completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.product_code} x{self.quantity}"

    def get_line_total(self):
        return self.quantity * self.purchase_price

    class Meta:
        db_table = 'purchase_order_items'
        ordering = ['position', 'id']
        indexes = [
            models.Index(fields=['purchase_order', 'tpos_sync_status'], name='idx_poitem_order_sync'),
        ]
