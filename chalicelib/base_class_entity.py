from datetime import datetime
from typing import Tuple, Dict, List

from chalicelib.constants.substitute_keys import from_db, to_db
from chalicelib.utils import db as utils_db, exceptions
from chalicelib.utils.data import substitute_keys
from chalicelib.utils.logger import logger

# storage attributes which never reach the entity constructors
SERVICE_ATTRIBUTES = ('partkey', 'sortkey', 'record_type')


class EntityBase:
    """
    One record of the general table.

    Children set pk/sk templates, the validation dicts
    (field name -> predicate) and implement _get_pk_sk and _to_dict.
    Immutable fields are written once on create, mutable and optional
    ones are the only fields an update may touch.
    """
    pk = None
    sk = None

    required_immutable_fields_validation = {}
    required_mutable_fields_validation = {}
    optional_fields_validation = {}

    def __init__(self, id_):
        self.id_: str = id_
        self.record_type: str = ''
        self.db_record: dict = {}

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk

    def _get_db_item(self) -> Dict:
        item = utils_db.get_db_item(*self._get_pk_sk())
        for attribute in SERVICE_ATTRIBUTES:
            item.pop(attribute, None)
        return item

    def _load(self):
        """
        Re-initializes the entity from its stored record, RecordNotFound if there is none
        """
        self.__init__(**self._get_db_item())
        return self

    def _to_dict(self) -> Dict:
        return {'id_': self.id_}

    def _init_db_record(self) -> None:
        pk, sk = self._get_pk_sk()
        stored_fields = {key: value for key, value in self._to_dict().items() if value is not None}
        self.db_record = {'partkey': pk, 'sortkey': sk, 'record_type': self.record_type, **stored_fields}

    @staticmethod
    def raise_validation_error(key):
        message = f'Validation error occurred while validating field={key}'
        logger.error(f"raise_validation_error ::: {message}")
        raise exceptions.ValidationException(message)

    def _validate_db_record(self):
        required = {**self.required_immutable_fields_validation, **self.required_mutable_fields_validation}
        for key, is_valid in required.items():
            if not is_valid(self.db_record.get(key)):
                self.raise_validation_error(key)
        for key, is_valid in self.optional_fields_validation.items():
            value = self.db_record.get(key)
            if value is not None and not is_valid(value):
                self.raise_validation_error(key)

    def _get_validated_update_dict(self) -> Dict:
        """
        Mutable and optional fields which pass validation,
        invalid ones are dropped from the update with a warning
        """
        validation_dict = {**self.required_mutable_fields_validation, **self.optional_fields_validation}
        clean_dict = {}
        for key, value in self._to_dict().items():
            if key not in validation_dict:
                continue
            if validation_dict[key](value):
                clean_dict[key] = value
            elif value is not None:
                logger.warning(f'_get_validated_update_dict ::: {key=} is not valid, skipped')
        return clean_dict

    def _create_db_record(self, unique: bool = True) -> None:
        """
        unique=True fails with RecordAlreadyExists instead of overwriting
        """
        self._init_db_record()
        self._validate_db_record()
        utils_db.put_db_record(self.db_record, unique=unique)
        logger.info(f"_create_db_record ::: {self.record_type=} {self.id_=} "
                    f"partkey={self.db_record['partkey']} sortkey={self.db_record['sortkey']} created")

    def _update_fields_whitelist(self) -> List:
        return [*self.required_mutable_fields_validation, *self.optional_fields_validation]

    def _update_db_record(self):
        pk, sk = self._get_pk_sk()
        self.date_updated = datetime.now().isoformat(timespec="seconds")
        update_dict = self._get_validated_update_dict()
        substitute_keys(dict_to_process=update_dict, base_keys=to_db)
        utils_db.update_db_record(
            key={'partkey': pk, 'sortkey': sk},
            update_body=update_dict,
            allowed_attrs_to_update=self._update_fields_whitelist()
        )
        logger.info(f"_update_db_record ::: {self.record_type=} {self.id_=} {pk=} {sk=} updated")

    def _delete_db_record(self):
        pk, sk = self._get_pk_sk()
        utils_db.delete_db_record({'partkey': pk, 'sortkey': sk})
        logger.info(f"_delete_db_record ::: {self.record_type=} {self.id_=} deleted")

    def _to_ui(self) -> Dict:
        item = self._to_dict()
        substitute_keys(dict_to_process=item, base_keys=from_db)
        return item

    def to_ui(self) -> Dict:
        return self._to_ui()
