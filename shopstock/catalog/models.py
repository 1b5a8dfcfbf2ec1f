from django.db import models


class Product(models.Model):
    """
    Catalogue product.

    A base product has ``base_product_code == product_code``; its variants
    share the parent's code in ``base_product_code``.
    """
    product_code = models.CharField(max_length=100, unique=True, db_index=True)
    product_name = models.CharField(max_length=500)
    variant = models.CharField(max_length=500, blank=True, null=True)
    base_product_code = models.CharField(max_length=100, blank=True, null=True, db_index=True)
    selling_price = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    purchase_price = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    stock_quantity = models.IntegerField(default=0)
    virtual_available = models.IntegerField(default=0)
    unit = models.CharField(max_length=50, default='Cái')
    category = models.CharField(max_length=200, blank=True, null=True)
    barcode = models.CharField(max_length=100, blank=True, null=True, db_index=True)
    supplier_name = models.CharField(max_length=200, blank=True, null=True, db_index=True)
    product_images = models.JSONField(default=list, blank=True)
    price_images = models.JSONField(default=list, blank=True)
    # TPOS template id on parents and children; children also hold the variant id in productid_bienthe
    tpos_product_id = models.BigIntegerField(null=True, blank=True, db_index=True)
    productid_bienthe = models.BigIntegerField(null=True, blank=True)
    tpos_image_url = models.URLField(max_length=1000, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.product_name} ({self.product_code})"

    @property
    def is_base_product(self):
        return not self.base_product_code or self.base_product_code == self.product_code

    class Meta:
        db_table = 'products'
        ordering = ['-created_at', '-id']


class ProductAttribute(models.Model):
    """Attribute such as colour or size"""
    name = models.CharField(max_length=100, unique=True)
    display_order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'product_attributes'
        ordering = ['display_order', 'name']


class ProductAttributeValue(models.Model):
    """One selectable value of an attribute, optionally linked to its TPOS counterpart"""
    attribute = models.ForeignKey(ProductAttribute, on_delete=models.CASCADE, related_name='values')
    value = models.CharField(max_length=200)
    code = models.CharField(max_length=100, blank=True, null=True)
    display_order = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    tpos_id = models.BigIntegerField(null=True, blank=True)
    tpos_attribute_id = models.BigIntegerField(null=True, blank=True)
    sequence = models.IntegerField(null=True, blank=True)
    name_get = models.CharField(max_length=300, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.attribute.name}: {self.value}"

    class Meta:
        db_table = 'product_attribute_values'
        ordering = ['display_order', 'value']
        constraints = [
            models.UniqueConstraint(fields=['attribute', 'value'], name='uniq_attribute_value'),
        ]
