import enum
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


class DesignType(str, enum.Enum):
    """The four facade/interior styles offered to dealers."""
    MODERN_PREMIUM = 'modern_premium'
    TRUST_HERITAGE = 'trust_heritage'
    ECO_SMART = 'eco_smart'
    FESTIVE = 'festive'

    @property
    def label(self):
        return DESIGN_TYPE_LABELS[self]

    @classmethod
    def parse(cls, value):
        """Resolve a canonical tag or a legacy storage alias.

        Raises ValueError for anything else.
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        if key in DESIGN_TYPE_ALIASES:
            return DESIGN_TYPE_ALIASES[key]
        return cls(key)


DESIGN_TYPE_LABELS = {
    DesignType.MODERN_PREMIUM: 'Modern Premium',
    DesignType.TRUST_HERITAGE: 'Trust & Heritage',
    DesignType.ECO_SMART: 'Eco Smart',
    DesignType.FESTIVE: 'Festive',
}

# Tags written by older schema versions
DESIGN_TYPE_ALIASES = {
    'modern': DesignType.MODERN_PREMIUM,
    'classical': DesignType.TRUST_HERITAGE,
    'industrial': DesignType.ECO_SMART,
    'eco_friendly': DesignType.FESTIVE,
}

ALL_DESIGN_TYPES = list(DesignType)


class UploadType(str, enum.Enum):
    STOREFRONT = 'storefront'
    INTERIOR = 'interior'


class ProcessingStatus(str, enum.Enum):
    PENDING = 'pending'
    PROCESSING = 'processing'
    COMPLETED = 'completed'
    FAILED = 'failed'


SUBMISSION_STATUS_SUBMITTED = 'submitted'


class User(db.Model):
    """Contest participant, identified by the dealer's SAP code"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    dealership_name = db.Column(db.String(255), nullable=True)
    sap_code = db.Column(db.String(50), unique=True, nullable=False, index=True)
    mobile_number = db.Column(db.String(20), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'userId': self.id,
            'dealershipName': self.dealership_name,
            'sapCode': self.sap_code,
            'mobileNumber': self.mobile_number,
        }

    def __repr__(self):
        return f'<User {self.sap_code}>'


class Upload(db.Model):
    """An uploaded source photograph (storefront or interior)"""
    __tablename__ = 'uploads'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=True, index=True)
    original_name = db.Column(db.String(255), nullable=False)
    stored_filename = db.Column(db.String(255), nullable=False)
    file_path = db.Column(db.String(500), nullable=False)
    thumbnail_path = db.Column(db.String(500), nullable=True)
    file_size = db.Column(db.Integer, nullable=False)
    mime_type = db.Column(db.String(100), nullable=False)
    width = db.Column(db.Integer, nullable=True)
    height = db.Column(db.Integer, nullable=True)
    upload_type = db.Column(db.String(20), nullable=False, default=UploadType.STOREFRONT.value)
    storefront_design_id = db.Column(
        db.Integer,
        db.ForeignKey('generated_designs.id', ondelete='CASCADE', use_alter=True,
                      name='fk_uploads_storefront_design'),
        nullable=True,
    )
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    user = db.relationship('User', backref=db.backref('uploads', lazy=True))
    designs = db.relationship(
        'GeneratedDesign',
        backref='upload',
        lazy=True,
        cascade='all, delete-orphan',
        foreign_keys='GeneratedDesign.upload_id',
    )

    @property
    def is_interior(self):
        return self.upload_type == UploadType.INTERIOR.value

    def to_dict(self):
        return {
            'uploadId': self.id,
            'userId': self.user_id,
            'originalName': self.original_name,
            'filename': self.stored_filename,
            'filePath': self.file_path,
            'thumbnailPath': self.thumbnail_path,
            'fileSize': self.file_size,
            'mimeType': self.mime_type,
            'width': self.width,
            'height': self.height,
            'uploadType': self.upload_type,
            'storefrontDesignId': self.storefront_design_id,
            'uploadedAt': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Upload {self.id} ({self.upload_type}) by User {self.user_id}>'


class GeneratedDesign(db.Model):
    """One generated (or fallback-processed) style variant of an upload"""
    __tablename__ = 'generated_designs'

    id = db.Column(db.Integer, primary_key=True)
    upload_id = db.Column(db.Integer, db.ForeignKey('uploads.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=True, index=True)
    design_type = db.Column(db.String(32), nullable=False)
    filename = db.Column(db.String(255), nullable=False)
    file_path = db.Column(db.String(500), nullable=False)
    file_size = db.Column(db.Integer, nullable=True)
    width = db.Column(db.Integer, nullable=True)
    height = db.Column(db.Integer, nullable=True)
    ai_prompt = db.Column(db.Text, nullable=True)
    processing_status = db.Column(db.String(20), nullable=False, default=ProcessingStatus.PENDING.value)
    is_interior = db.Column(db.Boolean, nullable=False, default=False)
    storefront_design_id = db.Column(
        db.Integer, db.ForeignKey('generated_designs.id', ondelete='CASCADE'), nullable=True
    )
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    shares = db.relationship('Share', backref='design', lazy=True, cascade='all, delete-orphan')
    interior_designs = db.relationship(
        'GeneratedDesign',
        foreign_keys=[storefront_design_id],
        cascade='all',
        backref=db.backref('storefront_design', remote_side=[id]),
    )
    interior_uploads = db.relationship(
        'Upload',
        foreign_keys='Upload.storefront_design_id',
        cascade='all',
        backref='storefront_design',
    )
    storefront_submissions = db.relationship(
        'ContestSubmission', foreign_keys='ContestSubmission.storefront_design_id',
        back_populates='storefront_design', cascade='all',
    )
    interior_submissions = db.relationship(
        'ContestSubmission', foreign_keys='ContestSubmission.interior_design_id',
        back_populates='interior_design', cascade='all',
    )

    def to_dict(self):
        return {
            'designId': self.id,
            'uploadId': self.upload_id,
            'userId': self.user_id,
            'designType': self.design_type,
            'filename': self.filename,
            'filePath': self.file_path,
            'fileSize': self.file_size,
            'width': self.width,
            'height': self.height,
            'prompt': self.ai_prompt,
            'processingStatus': self.processing_status,
            'isInterior': bool(self.is_interior),
            'storefrontDesignId': self.storefront_design_id,
            'generatedAt': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<GeneratedDesign {self.id} {self.design_type} interior={self.is_interior}>'


class ContestSubmission(db.Model):
    """The single live (storefront, interior) contest entry of a user"""
    __tablename__ = 'contest_submissions'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True)
    storefront_design_id = db.Column(
        db.Integer, db.ForeignKey('generated_designs.id', ondelete='CASCADE'), nullable=False
    )
    interior_design_id = db.Column(
        db.Integer, db.ForeignKey('generated_designs.id', ondelete='CASCADE'), nullable=False
    )
    dealership_name = db.Column(db.String(255), nullable=True)
    sap_code = db.Column(db.String(50), nullable=True)
    mobile_number = db.Column(db.String(20), nullable=True)
    submission_id = db.Column(db.String(64), nullable=False, unique=True, index=True)
    status = db.Column(db.String(20), nullable=False, default=SUBMISSION_STATUS_SUBMITTED)
    submitted_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    user = db.relationship('User')
    storefront_design = db.relationship('GeneratedDesign', foreign_keys=[storefront_design_id],
                                        back_populates='storefront_submissions')
    interior_design = db.relationship('GeneratedDesign', foreign_keys=[interior_design_id],
                                      back_populates='interior_submissions')

    def to_dict(self):
        return {
            'submissionId': self.submission_id,
            'userId': self.user_id,
            'dealershipName': self.dealership_name or (self.user.dealership_name if self.user else None),
            'sapCode': self.sap_code or (self.user.sap_code if self.user else None),
            'mobileNumber': self.mobile_number or (self.user.mobile_number if self.user else None),
            'status': self.status,
            'submittedAt': self.submitted_at.isoformat() if self.submitted_at else None,
            'storefrontDesign': _design_summary(self.storefront_design, self.storefront_design_id),
            'interiorDesign': _design_summary(self.interior_design, self.interior_design_id),
        }

    def __repr__(self):
        return f'<ContestSubmission {self.submission_id} by User {self.user_id}>'


class Share(db.Model):
    """Append-only log of social shares"""
    __tablename__ = 'shares'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    design_id = db.Column(db.Integer, db.ForeignKey('generated_designs.id', ondelete='CASCADE'),
                          nullable=False, index=True)
    share_platform = db.Column(db.String(50), nullable=False, default='unknown')
    contest_entry = db.Column(db.Boolean, nullable=False, default=True)
    share_code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    shared_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    user = db.relationship('User')

    def __repr__(self):
        return f'<Share {self.share_code} {self.share_platform}>'


def _design_summary(design, design_id):
    if design is None:
        return {'designId': design_id}
    return {
        'designId': design.id,
        'designType': design.design_type,
        'filename': design.filename,
        'filePath': design.file_path,
    }