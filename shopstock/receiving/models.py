from django.db import models
from django.utils import timezone
from shopstock.core.models import User
from shopstock.purchasing.models import PurchaseOrder, PurchaseOrderItem


class GoodsReceiving(models.Model):
    """Delivery check of a purchase order"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('partial', 'Partial'),
        ('completed', 'Completed'),
    ]

    purchase_order = models.ForeignKey(PurchaseOrder, on_delete=models.CASCADE, related_name='receivings')
    receiving_date = models.DateTimeField(default=timezone.now)
    received_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='goods_receivings')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    total_items_expected = models.IntegerField(default=0)
    total_items_received = models.IntegerField(default=0)
    has_discrepancy = models.BooleanField(default=False)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Receiving {self.id} for PO-{self.purchase_order_id}"

    class Meta:
        db_table = 'goods_receiving'
        ordering = ['-created_at', '-id']


class GoodsReceivingItem(models.Model):
    """Received quantity of one purchase order line"""
    DISCREPANCY_CHOICES = [
        ('match', 'Match'),
        ('shortage', 'Shortage'),
        ('overage', 'Overage'),
    ]
    CONDITION_CHOICES = [
        ('good', 'Good'),
        ('damaged', 'Damaged'),
        ('wrong_item', 'Wrong Item'),
    ]

    goods_receiving = models.ForeignKey(GoodsReceiving, on_delete=models.CASCADE, related_name='items')
    purchase_order_item = models.ForeignKey(PurchaseOrderItem, on_delete=models.SET_NULL, null=True, blank=True, related_name='receiving_items')
    product_code = models.CharField(max_length=100)
    product_name = models.CharField(max_length=500)
    variant = models.CharField(max_length=500, blank=True, null=True)
    expected_quantity = models.IntegerField(default=0)
    received_quantity = models.IntegerField(default=0)
    discrepancy_type = models.CharField(max_length=20, choices=DISCREPANCY_CHOICES, default='match')
    # received - expected; negative for shortages
    discrepancy_quantity = models.IntegerField(default=0)
    product_condition = models.CharField(max_length=20, choices=CONDITION_CHOICES, default='good')
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.product_code}: {self.received_quantity}/{self.expected_quantity}"

    @staticmethod
    def classify(expected, received):
        """Returns (discrepancy_type, discrepancy_quantity)"""
        difference = received - expected
        if difference < 0:
            return 'shortage', difference
        if difference > 0:
            return 'overage', difference
        return 'match', 0

    class Meta:
        db_table = 'goods_receiving_items'
        ordering = ['id']
