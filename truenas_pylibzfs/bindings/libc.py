# SPDX-License-Identifier: Apache-2.0
#
# Copyright 2019 Hudson River Trading LLC.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#

"""
The few C runtime functions needed to render nvlists into memory and to
release strings that libzfs allocates on behalf of the caller.
"""

CDEF = """
    FILE *open_memstream(char **, size_t *);
    int fflush(FILE *);
    int fclose(FILE *);
    void free(void *);
"""

# None makes dlopen() return the C runtime the interpreter is linked with
LIBRARY = None

# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
