import uuid

from django.db import models


class Noc(models.Model):
    """No Objection Certificate / listing agreement between property owners and the brokerage."""

    class AgreementType(models.TextChoices):
        EXCLUSIVE = 'exclusive', 'Exclusive'
        NON_EXCLUSIVE = 'non-exclusive', 'Non-exclusive'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Property details
    property_type = models.CharField(max_length=50, blank=True)
    building_project_name = models.CharField(max_length=255, blank=True)
    community = models.CharField(max_length=500, blank=True)
    street_name = models.CharField(max_length=255, blank=True)
    build_up_area = models.CharField(max_length=50, blank=True)
    plot_area = models.CharField(max_length=50, blank=True)
    bedrooms = models.CharField(max_length=20, blank=True)
    bathrooms = models.CharField(max_length=20, blank=True)
    rental_amount = models.CharField(max_length=50, blank=True)
    sale_amount = models.CharField(max_length=50, blank=True)
    parking = models.CharField(max_length=50, blank=True)

    # Terms
    agreement_type = models.CharField(max_length=20, choices=AgreementType.choices, blank=True)
    period_months = models.PositiveSmallIntegerField(null=True, blank=True)
    agreement_date = models.DateField(null=True, blank=True)

    # Contact and location
    client_phone = models.CharField(max_length=32, unique=True, null=True, blank=True)
    location = models.CharField(max_length=500, blank=True)
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)

    pdf_url = models.URLField(max_length=500, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        db_table = 'noc_noc'
        verbose_name = 'NOC'
        verbose_name_plural = 'NOCs'

    def __str__(self):
        return f"NOC {self.building_project_name or self.pk}"

    def to_dict(self):
        return {
            'id': str(self.pk),
            'property_type': self.property_type,
            'building_project_name': self.building_project_name,
            'community': self.community,
            'street_name': self.street_name,
            'build_up_area': self.build_up_area,
            'plot_area': self.plot_area,
            'bedrooms': self.bedrooms,
            'bathrooms': self.bathrooms,
            'rental_amount': self.rental_amount,
            'sale_amount': self.sale_amount,
            'parking': self.parking,
            'agreement_type': self.agreement_type,
            'period_months': self.period_months,
            'agreement_date': self.agreement_date,
            'client_phone': self.client_phone,
            'location': self.location,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'pdf_url': self.pdf_url,
            'owners': [owner.to_dict() for owner in self.owners.all()],
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }


class NocOwner(models.Model):
    """One signing owner of a NOC, in the order the owners were entered."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    noc = models.ForeignKey(Noc, on_delete=models.CASCADE, related_name='owners')
    position = models.PositiveSmallIntegerField(default=0)
    name = models.CharField(max_length=255, blank=True)
    emirates_id = models.CharField(max_length=64, blank=True)
    issue_date = models.DateField(null=True, blank=True)
    expiry_date = models.DateField(null=True, blank=True)
    country_code = models.CharField(max_length=8, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    signature_url = models.URLField(max_length=500, null=True, blank=True)
    signature_date = models.DateField(null=True, blank=True)

    class Meta:
        ordering = ['position']
        db_table = 'noc_nocowner'

    def __str__(self):
        return self.name or f"Owner {self.position + 1}"

    def to_dict(self):
        return {
            'id': str(self.pk),
            'position': self.position,
            'name': self.name,
            'emirates_id': self.emirates_id,
            'issue_date': self.issue_date,
            'expiry_date': self.expiry_date,
            'country_code': self.country_code,
            'phone': self.phone,
            'signature_url': self.signature_url,
            'signature_date': self.signature_date,
        }
