"""
Branch, storage and point-of-sale rules.

The single-headquarters and default-storage rules are enforced here inside a
database transaction; the company row (branches) or the branch row (storages)
is locked first so concurrent requests apply them one at a time.
"""
import logging
from django.db import transaction
from django.utils import timezone

from flowstore.core.exceptions import ServiceError
from flowstore.core.models import lock_company
from flowstore.core.utils import create_audit_log
from .models import Branch, Storage, PointOfSale

logger = logging.getLogger('flowstore.locations')


def _clean_code(code):
    code = (code or '').strip()
    return code or None


def list_branches(include_inactive=False):
    queryset = Branch.objects.alive()
    if not include_inactive:
        queryset = queryset.filter(is_active=True)
    return queryset.order_by('-is_headquarters', 'name')


@transaction.atomic
def create_branch(data, request=None):
    """Create a branch; flagging it as headquarters demotes the current one"""
    company = lock_company()
    code = _clean_code(data.get('code'))
    if code and Branch.objects.alive().filter(code=code).exists():
        raise ServiceError('A branch with this code already exists')

    live_branches = Branch.objects.alive().filter(company=company)
    # The first branch is always the headquarters
    is_headquarters = bool(data.get('is_headquarters')) or not live_branches.exists()
    if is_headquarters:
        demoted = live_branches.filter(is_headquarters=True).update(is_headquarters=False)
        if demoted:
            logger.info(f"Demoted {demoted} headquarters branch(es) for company {company.pk}")

    fields = {key: value for key, value in data.items() if key not in ('code', 'is_headquarters', 'company')}
    branch = Branch.objects.create(company=company, code=code, is_headquarters=is_headquarters, **fields)
    create_audit_log(request=request, action='create', model_name='Branch', object_id=branch.id,
                     object_name=branch.name, changes={'is_headquarters': branch.is_headquarters})
    logger.info(f"Branch '{branch.name}' created (headquarters={branch.is_headquarters})")
    return branch


@transaction.atomic
def update_branch(branch, data, request=None):
    company = lock_company()
    branch = Branch.objects.select_for_update().get(pk=branch.pk)

    if 'code' in data:
        code = _clean_code(data.get('code'))
        if code and Branch.objects.alive().filter(code=code).exclude(pk=branch.pk).exists():
            raise ServiceError('A branch with this code already exists')
        data = {**data, 'code': code}

    if 'is_headquarters' in data:
        wants_headquarters = bool(data['is_headquarters'])
        others = Branch.objects.alive().filter(company=company).exclude(pk=branch.pk)
        if wants_headquarters and not branch.is_headquarters:
            others.filter(is_headquarters=True).update(is_headquarters=False)
        elif not wants_headquarters and branch.is_headquarters and others.exists():
            raise ServiceError('Mark another branch as headquarters instead of unflagging this one')
        elif not wants_headquarters and branch.is_headquarters:
            # The only branch stays headquarters
            data = {**data, 'is_headquarters': True}

    changes = {}
    for key, value in data.items():
        if key == 'company':
            continue
        if getattr(branch, key) != value:
            changes[key] = str(value)
        setattr(branch, key, value)
    branch.save()

    if changes:
        create_audit_log(request=request, action='update', model_name='Branch', object_id=branch.id,
                         object_name=branch.name, changes=changes)
    return branch


@transaction.atomic
def delete_branch(branch, request=None):
    """Soft delete; a branch still holding storages or points of sale cannot go"""
    company = lock_company()
    if branch.storages.alive().exists():
        raise ServiceError('The branch still has storages; remove them first')
    if branch.points_of_sale.alive().exists():
        raise ServiceError('The branch still has points of sale; remove them first')
    if branch.is_headquarters and Branch.objects.alive().filter(company=company).exclude(pk=branch.pk).exists():
        raise ServiceError('The headquarters cannot be deleted; mark another branch as headquarters first')

    branch.deleted_at = timezone.now()
    branch.is_active = False
    branch.save(update_fields=['deleted_at', 'is_active', 'updated_at'])
    create_audit_log(request=request, action='delete', model_name='Branch', object_id=branch.id,
                     object_name=branch.name)
    logger.info(f"Branch '{branch.name}' deleted")


def get_branch_storages(branch):
    return branch.storages.alive().order_by('-is_default', 'name')


def list_storages(branch_id=None, category=None, include_inactive=False):
    queryset = Storage.objects.alive().select_related('branch')
    if branch_id:
        queryset = queryset.filter(branch_id=branch_id)
    if category:
        queryset = queryset.filter(category=category)
    if not include_inactive:
        queryset = queryset.filter(is_active=True)
    return queryset.order_by('-is_default', 'name')


def _validate_storage_placement(category, branch):
    if category == Storage.CATEGORY_IN_BRANCH and branch is None:
        raise ServiceError('Branch storages must belong to a branch')
    if category != Storage.CATEGORY_IN_BRANCH and branch is not None:
        raise ServiceError('This storage category cannot belong to a branch')
    if branch is not None and branch.deleted_at is not None:
        raise ServiceError('The branch no longer exists')


def _clear_other_defaults(branch, exclude_pk=None):
    Branch.objects.select_for_update().get(pk=branch.pk)
    others = Storage.objects.filter(branch=branch, is_default=True)
    if exclude_pk:
        others = others.exclude(pk=exclude_pk)
    others.update(is_default=False)


@transaction.atomic
def create_storage(data, request=None):
    category = data.get('category') or Storage.CATEGORY_IN_BRANCH
    branch = data.get('branch')
    _validate_storage_placement(category, branch)

    code = _clean_code(data.get('code'))
    if code and Storage.objects.alive().filter(code=code).exists():
        raise ServiceError('The storage code is already in use')

    # Only branch storages can be the branch default
    is_default = bool(data.get('is_default')) and branch is not None
    if is_default:
        _clear_other_defaults(branch)

    fields = {key: value for key, value in data.items() if key not in ('code', 'category', 'is_default')}
    storage = Storage.objects.create(code=code, category=category, is_default=is_default, **fields)
    create_audit_log(request=request, action='create', model_name='Storage', object_id=storage.id,
                     object_name=storage.name)
    logger.info(f"Storage '{storage.name}' created in branch {storage.branch_id}")
    return storage


@transaction.atomic
def update_storage(storage, data, request=None):
    storage = Storage.objects.select_for_update().get(pk=storage.pk)
    category = data.get('category', storage.category)
    branch = data['branch'] if 'branch' in data else storage.branch
    _validate_storage_placement(category, branch)

    if 'code' in data:
        code = _clean_code(data.get('code'))
        if code and Storage.objects.alive().filter(code=code).exclude(pk=storage.pk).exists():
            raise ServiceError('The storage code is already in use')
        data = {**data, 'code': code}

    is_default = bool(data.get('is_default', storage.is_default)) and branch is not None
    if is_default:
        _clear_other_defaults(branch, exclude_pk=storage.pk)
    data = {**data, 'is_default': is_default}

    for key, value in data.items():
        setattr(storage, key, value)
    storage.save()
    create_audit_log(request=request, action='update', model_name='Storage', object_id=storage.id,
                     object_name=storage.name, changes={key: str(value) for key, value in data.items()})
    return storage


@transaction.atomic
def delete_storage(storage, request=None):
    """Soft delete; refused while the storage still holds stock"""
    if storage.stock_levels.exclude(quantity=0).exists():
        raise ServiceError('The storage still holds stock; transfer or adjust it to zero first')
    storage.deleted_at = timezone.now()
    storage.is_active = False
    storage.is_default = False
    storage.save(update_fields=['deleted_at', 'is_active', 'is_default', 'updated_at'])
    create_audit_log(request=request, action='delete', model_name='Storage', object_id=storage.id,
                     object_name=storage.name)


def list_points_of_sale(branch_id=None, include_inactive=False):
    queryset = PointOfSale.objects.alive().select_related('branch', 'default_price_list')
    if branch_id:
        queryset = queryset.filter(branch_id=branch_id)
    if not include_inactive:
        queryset = queryset.filter(is_active=True)
    return queryset.order_by('name')


def _validate_point_of_sale(data, instance=None):
    branch = data.get('branch', instance.branch if instance else None)
    if branch is None or branch.deleted_at is not None:
        raise ServiceError('A point of sale needs an existing branch')

    price_list = data.get('default_price_list', instance.default_price_list if instance else None)
    if price_list is not None and (price_list.deleted_at is not None or not price_list.is_active):
        raise ServiceError('The default price list is not active')

    if 'code' in data:
        code = _clean_code(data.get('code'))
        others = PointOfSale.objects.alive().filter(code=code)
        if instance:
            others = others.exclude(pk=instance.pk)
        if code and others.exists():
            raise ServiceError('A point of sale with this code already exists')
        data = {**data, 'code': code}
    return data


@transaction.atomic
def create_point_of_sale(data, request=None):
    data = _validate_point_of_sale(data)
    point_of_sale = PointOfSale.objects.create(**data)
    create_audit_log(request=request, action='create', model_name='PointOfSale', object_id=point_of_sale.id,
                     object_name=point_of_sale.name)
    return point_of_sale


@transaction.atomic
def update_point_of_sale(point_of_sale, data, request=None):
    data = _validate_point_of_sale(data, instance=point_of_sale)
    for key, value in data.items():
        setattr(point_of_sale, key, value)
    point_of_sale.save()
    create_audit_log(request=request, action='update', model_name='PointOfSale', object_id=point_of_sale.id,
                     object_name=point_of_sale.name)
    return point_of_sale


@transaction.atomic
def delete_point_of_sale(point_of_sale, request=None):
    point_of_sale.deleted_at = timezone.now()
    point_of_sale.is_active = False
    point_of_sale.save(update_fields=['deleted_at', 'is_active', 'updated_at'])
    create_audit_log(request=request, action='delete', model_name='PointOfSale', object_id=point_of_sale.id,
                     object_name=point_of_sale.name)
