"""Shared mountstats fixtures."""

import pytest

EVENTS_27 = " ".join(str(i) for i in range(1, 28))
EVENTS_LATER = " ".join(str(i + 10) for i in range(1, 28))
ZEROS_25 = " ".join(["0"] * 25)

MOUNTSTATS_SAMPLE = f"""\
device rootfs mounted on / with fstype rootfs
device proc mounted on /proc with fstype proc
device server:/export mounted on /mnt/nfs with fstype nfs4 statvers=1.1
\topts:\trw,vers=4.1,rsize=1048576,wsize=1048576,namlen=255,hard,proto=tcp,timeo=600,retrans=2,sec=sys
\tage:\t12345
\timpl_id:\tname='',domain='',date='0,0'
\tcaps:\tcaps=0x3ffdf,wtmult=512,dtsize=32768,bsize=0,namlen=255
\tnfsv4:\tbm0=0xfdffbfff,bm1=0xf9be3e,bm2=0x800,acl=0x3,sessions,pnfs=not configured
\tsec:\tflavor=1,pseudoflavor=1
\tevents:\t{EVENTS_27}
\tbytes:\t1048576 0 0 0 2097152 0 256 512
\tRPC iostats version: 1.1  p/v: 100003/4 (nfs)
\txprt:\ttcp 0 1 2 0 0 100 100 0 100 0 2 0 0
\tper-op statistics
\t        NULL: 1 1 0 44 24 0 0 0 0
\t        READ: 100 100 0 13600 1050000 10 200 220 0
\t       WRITE: 50 50 0 2100000 6800 5 150 160 1
\t     GETATTR: 400 400 0 60000 96000 2 80 90 0
\t      COMMIT: 0 0 0 0 0 0 0 0 0

device sysfs mounted on /sys with fstype sysfs
device backup:/data mounted on /mnt/backup with fstype nfs statvers=1.1
\tage:\t500
\tevents:\t{ZEROS_25}
\tbytes:\t0 0 0 0 0 0 0 0
\tper-op statistics
\t        READ: 10 10 0 1360 40960 1 20 22
"""

# Ten seconds later: READ and WRITE advanced on /mnt/nfs while GETATTR stayed idle;
# ACCESS shows up for the first time.
MOUNTSTATS_LATER = f"""\
device rootfs mounted on / with fstype rootfs
device server:/export mounted on /mnt/nfs with fstype nfs4 statvers=1.1
\tage:\t12355
\tevents:\t{EVENTS_LATER}
\tbytes:\t2097152 0 0 0 4194304 0 512 1024
\tRPC iostats version: 1.1  p/v: 100003/4 (nfs)
\tper-op statistics
\t        NULL: 1 1 0 44 24 0 0 0 0
\t        READ: 200 200 0 27200 2098576 20 400 440 0
\t       WRITE: 60 60 1 2150000 8160 15 250 270 2
\t     GETATTR: 400 400 0 60000 96000 2 80 90 0
\t      COMMIT: 0 0 0 0 0 0 0 0 0
\t      ACCESS: 5 5 0 600 700 0 5 5 0
device backup:/data mounted on /mnt/backup with fstype nfs statvers=1.1
\tage:\t510
\tevents:\t{ZEROS_25}
\tbytes:\t0 0 0 0 0 0 0 0
\tper-op statistics
\t        READ: 10 10 0 1360 40960 1 20 22
"""


@pytest.fixture
def mountstats_sample() -> str:
    return MOUNTSTATS_SAMPLE


@pytest.fixture
def mountstats_later() -> str:
    return MOUNTSTATS_LATER


@pytest.fixture
def mountstats_file(tmp_path):
    path = tmp_path / "mountstats"
    path.write_text(MOUNTSTATS_SAMPLE)
    return path
