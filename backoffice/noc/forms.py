from django import forms

from noc.models import Noc
from noc.services import join_community


class CommunityField(forms.Field):
    """A single community name or a list of them."""

    def to_python(self, value):
        if value in self.empty_values:
            return ''
        if isinstance(value, (list, tuple)):
            return [str(part).strip() for part in value if part not in self.empty_values]
        return str(value).strip()


class NocForm(forms.Form):
    property_type = forms.CharField(max_length=50, required=False)
    building_project_name = forms.CharField(max_length=255, required=False)
    community = CommunityField(required=False)
    street_name = forms.CharField(max_length=255, required=False)
    build_up_area = forms.CharField(max_length=50, required=False)
    plot_area = forms.CharField(max_length=50, required=False)
    bedrooms = forms.CharField(max_length=20, required=False)
    bathrooms = forms.CharField(max_length=20, required=False)
    rental_amount = forms.CharField(max_length=50, required=False)
    sale_amount = forms.CharField(max_length=50, required=False)
    parking = forms.CharField(max_length=50, required=False)
    agreement_type = forms.ChoiceField(choices=Noc.AgreementType.choices, required=False)
    period_months = forms.IntegerField(min_value=0, max_value=120, required=False)
    # Dates are parsed leniently by the service
    agreement_date = forms.CharField(required=False)
    client_phone = forms.CharField(max_length=32, required=False)
    location = forms.CharField(max_length=500, required=False)
    latitude = forms.FloatField(min_value=-90, max_value=90, required=False)
    longitude = forms.FloatField(min_value=-180, max_value=180, required=False)

    def clean_community(self):
        community = self.cleaned_data['community']
        limit = Noc._meta.get_field('community').max_length
        if len(join_community(community)) > limit:
            raise forms.ValidationError(f"Community must be at most {limit} characters once joined.")
        return community


class NocOwnerForm(forms.Form):
    name = forms.CharField(max_length=255, required=False)
    emirates_id = forms.CharField(max_length=64, required=False)
    issue_date = forms.CharField(required=False)
    expiry_date = forms.CharField(required=False)
    country_code = forms.CharField(max_length=8, required=False)
    phone = forms.CharField(max_length=32, required=False)
    signature_date = forms.CharField(required=False)
